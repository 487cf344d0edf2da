import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('clinic')

# 从 Django settings 读取所有 CELERY_ 开头的配置
app.config_from_object('django.conf:settings', namespace='CELERY')

# 自动发现各 app 下的 tasks.py
app.autodiscover_tasks()

# EHR 镜像每天凌晨拉一次
app.conf.beat_schedule = {
    'sync-ehr-records-nightly': {
        'task': 'clinic.tasks.sync_ehr_records',
        'schedule': crontab(hour=2, minute=0),
    },
}
