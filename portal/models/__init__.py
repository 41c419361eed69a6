from .admin import AdminUser
from .course import Area, OrganType, Course
from .pre_enrollment import PreEnrollment, PreEnrollmentStatus, OrganApprovalStatus
from .enrollment import Enrollment, EnrollmentStatus, EnrollmentPaymentStatus
from .payment import Payment, PaymentKind, PaymentStatus, PAID_STATUSES
from .certificate import Certificate, CertificateStatus
from .document_template import DocumentTemplate, DocumentType
from .settings import SystemSettings, PaymentSettings
from .webhook_log import WebhookLog

__all__ = [
    "AdminUser",
    "Area",
    "OrganType",
    "Course",
    "PreEnrollment",
    "PreEnrollmentStatus",
    "OrganApprovalStatus",
    "Enrollment",
    "EnrollmentStatus",
    "EnrollmentPaymentStatus",
    "Payment",
    "PaymentKind",
    "PaymentStatus",
    "PAID_STATUSES",
    "Certificate",
    "CertificateStatus",
    "DocumentTemplate",
    "DocumentType",
    "SystemSettings",
    "PaymentSettings",
    "WebhookLog"
]
