"""
Tests for observability: PHI redaction, request correlation, domain events,
metrics and health endpoints.
"""
import json
import logging

import pytest
from django.core.exceptions import ValidationError
from prometheus_client import REGISTRY

from apps.consultations.services import complete_consultation
from apps.core.observability.correlation import get_request_id
from apps.core.observability.events import log_consistency_checkpoint, log_domain_event
from apps.core.observability.logging import SanitizedJSONFormatter, sanitize_dict


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0


class TestSanitization:

    def test_sensitive_keys_are_redacted(self):
        data = {
            'visit_id': 'abc',
            'diagnosis': 'Viral fever',
            'patient': {'name': 'Jane', 'mobile': '9876543210'},
            'lines': [{'instructions': 'After food', 'quantity': 10}],
        }

        sanitized = sanitize_dict(data)

        assert sanitized['visit_id'] == 'abc'
        assert sanitized['diagnosis'] == '[REDACTED]'
        assert sanitized['patient'] == {'name': '[REDACTED]', 'mobile': '[REDACTED]'}
        assert sanitized['lines'] == [{'instructions': '[REDACTED]', 'quantity': 10}]

    def test_original_is_not_modified(self):
        data = {'chief_complaint': 'Fever'}
        sanitize_dict(data)
        assert data['chief_complaint'] == 'Fever'

    def test_json_formatter_redacts_extra_fields(self):
        record = logging.LogRecord('test', logging.INFO, __file__, 1, 'Visit updated', None, None)
        record.chief_complaint = 'Chest pain'
        record.visit_id = 'v-1'

        payload = json.loads(SanitizedJSONFormatter().format(record))

        assert payload['message'] == 'Visit updated'
        assert payload['chief_complaint'] == '[REDACTED]'
        assert payload['visit_id'] == 'v-1'


class TestDomainEvents:

    def test_failure_events_log_at_error(self, caplog):
        with caplog.at_level(logging.INFO, logger='apps.core.observability.events'):
            log_domain_event('bill_payment_recorded', entity_type='Bill', entity_id='b-1', result='failure')

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.event == 'bill_payment_recorded'
        assert record.entity_id == 'b-1'

    def test_retry_events_log_at_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger='apps.core.observability.events'):
            log_domain_event('transaction_retry', result='retry', attempt=1)

        assert caplog.records[-1].levelno == logging.WARNING

    def test_extra_fields_are_sanitized(self, caplog):
        with caplog.at_level(logging.INFO, logger='apps.core.observability.events'):
            log_domain_event('consultation_completed', diagnosis='Viral fever')

        assert caplog.records[-1].diagnosis == '[REDACTED]'

    def test_failed_checkpoint_logs_error(self, caplog):
        with caplog.at_level(logging.INFO, logger='apps.core.observability.events'):
            log_consistency_checkpoint(
                'consultation_aggregates_consistent',
                entity_ids={'visit_id': 'v-1'},
                checks_passed={'bill_linked': True, 'paid_within_total': False},
            )

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.status == 'failed'


@pytest.mark.django_db
class TestWorkflowTelemetry:

    def test_success_counted_and_checkpoint_passed(self, consultation_payload, caplog):
        before = _sample('consultations_completed_total', {'path': 'complete', 'result': 'success'})

        with caplog.at_level(logging.INFO):
            complete_consultation(consultation_payload())

        assert _sample(
            'consultations_completed_total', {'path': 'complete', 'result': 'success'}
        ) == before + 1
        checkpoints = [r for r in caplog.records if getattr(r, 'event', None) == 'consistency_checkpoint']
        assert checkpoints and checkpoints[-1].status == 'passed'
        completed = [r for r in caplog.records if getattr(r, 'event', None) == 'consultation_completed']
        assert len(completed) == 1

    def test_validation_failure_counted(self, consultation_payload):
        labels = {'path': 'complete', 'result': 'validation_error'}
        before = _sample('consultations_completed_total', labels)

        with pytest.raises(ValidationError):
            complete_consultation(consultation_payload(consultation_details={}))

        assert _sample('consultations_completed_total', labels) == before + 1

    def test_reuse_counted_per_aggregate(self, consultation_payload):
        before = _sample('consultation_aggregates_reused_total', {'aggregate': 'bill'})

        complete_consultation(consultation_payload())
        complete_consultation(consultation_payload())

        assert _sample('consultation_aggregates_reused_total', {'aggregate': 'bill'}) == before + 1

    def test_overpayment_blocked_counted(self, consultation_payload):
        before = _sample('bill_overpayment_blocked_total')

        with pytest.raises(ValidationError):
            complete_consultation(consultation_payload(payment={'amount': 1000, 'payment_mode': 'cash'}))

        assert _sample('bill_overpayment_blocked_total') == before + 1


@pytest.mark.django_db
class TestRequestCorrelation:

    def test_request_id_generated(self, api_client):
        response = api_client.get('/healthz')

        assert response['X-Request-ID']

    def test_request_id_propagated(self, api_client):
        response = api_client.get('/healthz', HTTP_X_REQUEST_ID='req-123', HTTP_X_TRACE_ID='trace-9')

        assert response['X-Request-ID'] == 'req-123'
        assert response['X-Trace-ID'] == 'trace-9'

    def test_context_cleared_after_response(self, api_client):
        api_client.get('/healthz', HTTP_X_REQUEST_ID='req-456')

        assert get_request_id() is None

    def test_http_metrics_use_route_name(self, api_client):
        labels = {'path': 'healthz', 'method': 'GET', 'status': '200'}
        before = _sample('http_requests_total', labels)

        api_client.get('/healthz')

        assert _sample('http_requests_total', labels) == before + 1


@pytest.mark.django_db
class TestHealthEndpoints:

    def test_healthz(self, api_client):
        response = api_client.get('/healthz')

        assert response.status_code == 200
        assert response.json()['status'] == 'ok'

    def test_readyz(self, api_client):
        response = api_client.get('/readyz')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ready'
        assert data['checks'] == {'database': True, 'migrations': True}
