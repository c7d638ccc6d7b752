from dst_crm.core.models.access_request import AccessRequest
from dst_crm.core.models.allowed_email import AllowedEmail
from dst_crm.core.models.payment import Payment
from dst_crm.core.models.student import Student

__all__ = [
    "AccessRequest",
    "AllowedEmail",
    "Payment",
    "Student",
]
