"""
Unit tests for Celery tasks.

直接调用 task 函数（不经过 broker），retry 用 mock 拦截，验证重试策略。
"""
from unittest.mock import patch

import pytest
from celery.exceptions import Retry

from clinic.tasks import sync_ehr_records, sync_patient_to_billing
from tests.conftest import PatientFactory


@pytest.mark.django_db
class TestSyncPatientToBilling:

    def test_success(self, requests_mock):
        requests_mock.post('https://billing.test/patients', json={'id': 'b-1'})
        patient = PatientFactory(sync_status='failed')

        assert sync_patient_to_billing(str(patient.id)) == 'b-1'
        patient.refresh_from_db()
        assert patient.sync_status == 'synced'

    def test_already_synced_is_skipped(self, requests_mock):
        patient = PatientFactory(sync_status='synced', billing_id='b-7')

        assert sync_patient_to_billing(str(patient.id)) == 'b-7'
        assert not requests_mock.called

    def test_missing_patient(self):
        assert sync_patient_to_billing('00000000-0000-0000-0000-000000000000') is None

    def test_transient_failure_retries_with_backoff(self, requests_mock):
        requests_mock.post('https://billing.test/patients', status_code=503, text='maintenance')
        patient = PatientFactory()

        with patch.object(sync_patient_to_billing, 'retry', side_effect=Retry()) as mock_retry:
            with pytest.raises(Retry):
                sync_patient_to_billing(str(patient.id))

        assert mock_retry.call_args.kwargs['countdown'] == 10
        patient.refresh_from_db()
        assert patient.sync_status == 'failed'
        assert 'maintenance' in patient.sync_error

    def test_rejected_credentials_not_retried(self, requests_mock):
        requests_mock.post('https://billing.test/patients', status_code=401, text='bad key')
        patient = PatientFactory()

        with patch.object(sync_patient_to_billing, 'retry') as mock_retry:
            assert sync_patient_to_billing(str(patient.id)) is None

        mock_retry.assert_not_called()
        patient.refresh_from_db()
        assert patient.sync_status == 'failed'


@pytest.mark.django_db
class TestSyncEhrRecords:

    def test_runs_full_sync(self, settings):
        settings.OSMIND_USERNAME = 'nurse'
        settings.OSMIND_PASSWORD = 'secret'
        summary = {'patients': {}, 'appointments': {}, 'insuranceCards': {}, 'errors': []}

        with patch('clinic.integrations.ehr.run_full_sync', return_value=summary) as mock_sync:
            assert sync_ehr_records('2025-10-01', '2025-10-31') == summary

        client, start, end = mock_sync.call_args.args
        assert client.username == 'nurse'
        assert (start, end) == ('2025-10-01', '2025-10-31')

    def test_missing_credentials_gives_up(self, requests_mock):
        with patch.object(sync_ehr_records, 'retry') as mock_retry:
            assert sync_ehr_records() is None
        mock_retry.assert_not_called()
