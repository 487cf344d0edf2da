"""
CRM client (HighLevel / LeadConnector REST v2).

Contacts mirror clinic patients; users are staff accounts on the clinic's
sub-account; calendars are per-provider booking calendars.
"""

import logging
from typing import Any, Optional

from django.conf import settings

from .base import BaseAPIClient

logger = logging.getLogger(__name__)

USER_ROLES = ('admin', 'user')
WORKING_DAYS = ('MON', 'TUE', 'WED', 'THU', 'FRI')


class CRMClient(BaseAPIClient):

    service_name = 'CRM'
    error_code = 'CRM_ERROR'

    def __init__(self, token: Optional[str] = None, location_id: Optional[str] = None, **kwargs):
        super().__init__(settings.GHL_API_BASE, **kwargs)
        self.token = token or settings.GHL_API_TOKEN
        self.location_id = location_id or settings.GHL_LOCATION_ID
        self.company_id = settings.GHL_COMPANY_ID
        self.api_version = settings.GHL_API_VERSION

    def _headers(self) -> dict[str, str]:
        if not self.token:
            raise self._not_configured('GHL_API_TOKEN')
        return {
            'Authorization': f'Bearer {self.token}',
            'Version': self.api_version,
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    # ── contacts ───────────────────────────────────────────────────────────

    def get_contact(self, contact_id: str) -> dict:
        return self._request('GET', f'/contacts/{contact_id}')['contact']

    def search_contacts(self, query: Optional[str] = None, tags: Optional[list[str]] = None, limit: int = 20) -> list[dict]:
        params = {'locationId': self.location_id, 'limit': limit}
        if query:
            params['query'] = query
        contacts = self._request('GET', '/contacts/', params=params).get('contacts', [])
        if tags:
            wanted = set(tags)
            contacts = [c for c in contacts if wanted.intersection(c.get('tags') or [])]
        return contacts

    def create_contact(self, contact: dict[str, Any]) -> dict:
        payload = {'locationId': self.location_id, **contact}
        return self._request('POST', '/contacts/', json=payload)['contact']

    def update_contact(self, contact_id: str, updates: dict[str, Any]) -> dict:
        return self._request('PUT', f'/contacts/{contact_id}', json=updates)

    # ── users ──────────────────────────────────────────────────────────────

    def list_users(self) -> list[dict]:
        return self._request('GET', '/users/', params={'locationId': self.location_id}).get('users', [])

    def get_user(self, user_id: str) -> dict:
        return self._request('GET', f'/users/{user_id}')

    def create_user(self, user: dict[str, Any]) -> dict:
        payload = {
            'companyId': self.company_id,
            'firstName': user['firstName'],
            'lastName': user['lastName'],
            'email': user['email'],
            'phone': user.get('phone'),
            'type': 'account',
            'role': user.get('role', 'user'),
            'locationIds': [self.location_id],
        }
        if user.get('permissions'):
            payload['permissions'] = user['permissions']
        logger.info("[CRM] creating user %s %s", user['firstName'], user['lastName'])
        return self._request('POST', '/users/', json=payload)

    def update_user(self, user_id: str, updates: dict[str, Any]) -> dict:
        return self._request('PUT', f'/users/{user_id}', json=updates)

    def delete_user(self, user_id: str) -> None:
        self._request('DELETE', f'/users/{user_id}')

    # ── calendars ──────────────────────────────────────────────────────────

    def list_calendars(self) -> list[dict]:
        return self._request('GET', '/calendars/', params={'locationId': self.location_id}).get('calendars', [])

    def create_personal_calendar(self, user_id: str, first_name: str, last_name: str, slug: str) -> dict:
        """One-provider booking calendar, weekdays 9-17."""
        full_name = f'{first_name} {last_name}'
        payload = {
            'locationId': self.location_id,
            'name': f'{full_name} - Personal Booking',
            'description': f'Personal booking calendar for {full_name}',
            'slug': slug,
            'teamMembers': [{'userId': user_id, 'priority': 1}],
            'eventType': 'RoundRobin_OptimizeForAvailability',
            'appoinmentPerSlot': 1,
            'appoinmentPerDay': 10,
            'availabilities': [
                {'date': day, 'hours': [{'openHour': 9, 'openMinute': 0, 'closeHour': 17, 'closeMinute': 0}]}
                for day in WORKING_DAYS
            ],
        }
        logger.info("[CRM] creating calendar for %s", full_name)
        return self._request('POST', '/calendars/', json=payload).get('calendar', {})


def patient_to_contact(patient) -> dict[str, Any]:
    """Patient row → CRM contact payload."""
    contact = {
        'firstName': patient.first_name,
        'lastName': patient.last_name,
        'email': patient.email or None,
        'phone': patient.cell_phone or None,
        'address1': patient.address_line_1 or None,
        'city': patient.city or None,
        'state': patient.state or None,
        'postalCode': patient.zip or None,
        'dateOfBirth': patient.date_of_birth or None,
        'source': 'Clinic Webapp',
        'tags': ['patient'],
    }
    return {k: v for k, v in contact.items() if v is not None}
