"""
EHR sync API client (Osmind bridge) + local mirror sync.

登录拿 bearer token，之后每个请求带上；遇到 401 用保存的账号密码重新登录一次再重试。
sync 顺序执行三段：appointments → 去重后的 patients → insurance cards，
单条记录失败记进 errors 继续往下走，不中断整个 sync。
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from django.conf import settings
from django.db import DatabaseError

from ..exceptions import UpstreamError
from ..models import EhrAppointment, EhrInsuranceCard, EhrPatient
from .base import BaseAPIClient

logger = logging.getLogger(__name__)


class EHRClient(BaseAPIClient):

    service_name = 'EHR'
    error_code = 'EHR_ERROR'

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None, **kwargs):
        super().__init__(settings.OSMIND_API_URL, **kwargs)
        self.username = username or settings.OSMIND_USERNAME
        self.password = password or settings.OSMIND_PASSWORD
        self.session_token: Optional[str] = None

    def _headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.session_token:
            headers['Authorization'] = f'Bearer {self.session_token}'
        return headers

    def login(self) -> dict:
        if not self.username or not self.password:
            raise UpstreamError(
                message='EHR credentials are not configured',
                code='EHR_ERROR_NOT_CONFIGURED',
            )
        logger.info("[EHR] logging in as %s", self.username)
        data = self._request('POST', '/api/login', json={'username': self.username, 'password': self.password})
        self.session_token = data.get('session_token') or data.get('token')
        return data

    def _authed(self, method: str, path: str, **kwargs) -> Any:
        if not self.session_token:
            self.login()
        response = self._send(method, path, **kwargs)
        if response.status_code == 401:
            logger.info("[EHR] token rejected on %s, re-authenticating", path)
            self.login()
            response = self._send(method, path, **kwargs)
        if not response.ok:
            self._raise_for_response(method, path, response)
        return response.json()

    def find_patients(self, first_name: str, last_name: str, dob: Optional[str] = None) -> list[dict]:
        params = {'first_name': first_name, 'last_name': last_name}
        if dob:
            params['dob'] = dob
        return self._authed('GET', '/api/patient', params=params)

    def get_patient(self, patient_id: str) -> dict:
        return self._authed('GET', f'/api/patient/{patient_id}')

    def get_appointments(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> list[dict]:
        params = {}
        if start_date:
            params['start_date'] = start_date
        if end_date:
            params['end_date'] = end_date
        return self._authed('GET', '/api/appointments', params=params)

    def get_insurance_cards(self, patient_id: str) -> list[dict]:
        return self._authed('GET', f'/api/documents/insurance-cards/{patient_id}')


# ── local mirror sync ──────────────────────────────────────────────────────


@dataclass
class SyncResult:
    synced: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    def record(self, created: bool):
        if created:
            self.synced += 1
        else:
            self.updated += 1

    def summary(self) -> dict:
        return {'synced': self.synced, 'updated': self.updated, 'errors': len(self.errors)}


def _upsert_patient(data: dict) -> bool:
    _, created = EhrPatient.objects.update_or_create(
        ehr_id=str(data['id']),
        defaults={
            'first_name': data.get('first_name') or '',
            'last_name': data.get('last_name') or '',
            'date_of_birth': data.get('date_of_birth'),
            'email': data.get('email'),
            'phone': data.get('phone'),
            'raw_data': data,
        },
    )
    return created


def sync_patients(client: EHRClient, appointments: list[dict]) -> SyncResult:
    result = SyncResult()
    patient_ids = list(dict.fromkeys(a.get('patient_id') for a in appointments if a.get('patient_id')))
    logger.info("[EHR] %d unique patients in appointment window", len(patient_ids))

    for patient_id in patient_ids:
        try:
            data = client.get_patient(patient_id)
            if not data or not data.get('id'):
                result.errors.append(f'Invalid patient data for {patient_id}')
                continue
            result.record(_upsert_patient(data))
        except (UpstreamError, DatabaseError) as exc:
            logger.warning("[EHR] patient %s failed: %s", patient_id, exc)
            result.errors.append(f'Error syncing patient {patient_id}: {exc}')
    return result


def sync_appointments(appointments: list[dict]) -> SyncResult:
    result = SyncResult()
    for data in appointments:
        if not data.get('id') or not data.get('patient_id'):
            result.errors.append('Invalid appointment data: missing id or patient_id')
            continue
        try:
            _, created = EhrAppointment.objects.update_or_create(
                ehr_id=str(data['id']),
                defaults={
                    'ehr_patient_id': str(data['patient_id']),
                    'date': data.get('date'),
                    'time': data.get('time'),
                    'provider_id': data.get('provider_id'),
                    'room_id': data.get('room_id'),
                    'status': data.get('status'),
                    'raw_data': data,
                },
            )
            result.record(created)
        except DatabaseError as exc:
            result.errors.append(f"Error syncing appointment {data['id']}: {exc}")
    return result


def sync_insurance_cards(client: EHRClient) -> SyncResult:
    result = SyncResult()
    for ehr_id in EhrPatient.objects.values_list('ehr_id', flat=True):
        try:
            for card in client.get_insurance_cards(ehr_id):
                if not card.get('id'):
                    continue
                _, created = EhrInsuranceCard.objects.update_or_create(
                    ehr_id=str(card['id']),
                    defaults={
                        'ehr_patient_id': ehr_id,
                        'name': card.get('name'),
                        'member_id': card.get('member_id'),
                        'group_number': card.get('group_number'),
                        'raw_data': card,
                    },
                )
                result.record(created)
        except (UpstreamError, DatabaseError) as exc:
            result.errors.append(f'Error syncing insurance cards for patient {ehr_id}: {exc}')
    return result


def run_full_sync(client: EHRClient, start_date: Optional[str] = None, end_date: Optional[str] = None) -> dict:
    """
    拉取时间窗口内的 appointments，然后依次同步 patients / appointments / insurance cards。

    拉 appointments 本身失败（登录失败、上游挂了）直接抛 UpstreamError。
    """
    logger.info("[EHR] full sync %s → %s", start_date or 'default', end_date or 'default')
    appointments = client.get_appointments(start_date, end_date)

    patients = sync_patients(client, appointments)
    appts = sync_appointments(appointments)
    cards = sync_insurance_cards(client)

    logger.info(
        "[EHR] sync done: patients %d new/%d updated, appointments %d new/%d updated, cards %d new/%d updated",
        patients.synced, patients.updated, appts.synced, appts.updated, cards.synced, cards.updated,
    )
    return {
        'patients': patients.summary(),
        'appointments': appts.summary(),
        'insuranceCards': cards.summary(),
        'errors': patients.errors + appts.errors + cards.errors,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
