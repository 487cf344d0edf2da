import logging
from celery import shared_task

logger = logging.getLogger(__name__)


def _retryable(exc) -> bool:
    return exc.http_status != 401 and not exc.code.endswith('_NOT_CONFIGURED')


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=10,   # 初始重试延迟（秒），指数退避会乘以 2^retry_count
    acks_late=True,           # 任务执行完才 ack，防止 worker 崩溃时任务丢失
    reject_on_worker_lost=True,
)
def sync_patient_to_billing(self, patient_id: str):
    """
    把本地 patient 补推到计费平台。

    重试策略：
      - 最多重试 3 次
      - 指数退避：10s → 20s → 40s
      - 超出次数后 patient 保持 sync_status=failed，sync_error 带最后一次的错误
    """
    from clinic.billing_services import push_patient_to_billing
    from clinic.exceptions import UpstreamError
    from clinic.models import Patient

    logger.info("[Celery][sync_patient_to_billing] patient_id=%s (attempt %d/%d)",
                patient_id, self.request.retries + 1, self.max_retries + 1)

    try:
        patient = Patient.objects.get(id=patient_id)
    except Patient.DoesNotExist:
        logger.error("[Celery] Patient %s 不存在，跳过", patient_id)
        return None

    if patient.sync_status == 'synced' and patient.billing_id:
        logger.info("[Celery] patient_id=%s 已同步 (billing_id=%s)，跳过", patient_id, patient.billing_id)
        return patient.billing_id

    try:
        push_patient_to_billing(patient)
    except UpstreamError as exc:
        logger.warning("[Celery] patient_id=%s 同步失败 (attempt %d): %s",
                       patient_id, self.request.retries + 1, exc.message)

        # 凭证被拒或没配置，重试没意义
        if not _retryable(exc):
            logger.error("[Celery] patient_id=%s 计费平台凭证不可用，不再重试", patient_id)
            return None

        if self.request.retries < self.max_retries:
            countdown = self.default_retry_delay * (2 ** self.request.retries)
            logger.info("[Celery] 将在 %ds 后重试 (第 %d 次)...", countdown, self.request.retries + 1)
            raise self.retry(exc=exc, countdown=countdown)

        logger.error("[Celery] patient_id=%s 已达最大重试次数，保持 failed", patient_id)
        return None

    logger.info("[Celery] patient_id=%s 同步完成 billing_id=%s", patient_id, patient.billing_id)
    return patient.billing_id


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
    reject_on_worker_lost=True,
)
def sync_ehr_records(self, start_date=None, end_date=None):
    """定时拉取 EHR 的 patients / appointments / insurance cards 到本地镜像。"""
    from clinic.exceptions import UpstreamError
    from clinic.integrations.ehr import EHRClient, run_full_sync

    logger.info("[Celery][sync_ehr_records] %s → %s (attempt %d/%d)",
                start_date or 'default', end_date or 'default',
                self.request.retries + 1, self.max_retries + 1)

    try:
        return run_full_sync(EHRClient(), start_date, end_date)
    except UpstreamError as exc:
        if not _retryable(exc) or self.request.retries >= self.max_retries:
            logger.error("[Celery] EHR sync 放弃: %s", exc.message)
            return None
        countdown = self.default_retry_delay * (2 ** self.request.retries)
        logger.warning("[Celery] EHR sync 失败，%ds 后重试: %s", countdown, exc.message)
        raise self.retry(exc=exc, countdown=countdown)
