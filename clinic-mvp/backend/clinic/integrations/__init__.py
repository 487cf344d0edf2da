from .billing import BillingClient
from .crm import CRMClient
from .ehr import EHRClient
from .payments import PaymentsClient
from .scraping import ScrapingClient
from .stubs import get_eligibility_checker, get_erx_gateway, get_secure_email_gateway

__all__ = [
    'BillingClient',
    'CRMClient',
    'EHRClient',
    'PaymentsClient',
    'ScrapingClient',
    'get_eligibility_checker',
    'get_erx_gateway',
    'get_secure_email_gateway',
]
