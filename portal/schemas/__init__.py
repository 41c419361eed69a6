from .auth import LoginRequest, LoginResponse, AdminUserResponse
from .course import CourseCreate, CourseUpdate, CourseModule, FeeScheduleResponse
from .pre_enrollment import (
    PreEnrollmentCreate,
    StudentRequest,
    OrganApprovalReport,
    StaffActionRequest,
    OrganApprovalDecision,
    validate_cpf
)
from .payment import CheckoutRequest, AsaasWebhookPayload, PaymentResponse
from .certificate import CertificateIssueRequest
from .document import (
    ContentBlock,
    Margins,
    DocumentTemplateCreate,
    DocumentTemplateUpdate,
    TemplatePreviewRequest
)
from .settings import SystemSettingsUpdate, PaymentSettingsUpdate, WebhookTestRequest

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "AdminUserResponse",
    "CourseCreate",
    "CourseUpdate",
    "CourseModule",
    "FeeScheduleResponse",
    "PreEnrollmentCreate",
    "StudentRequest",
    "OrganApprovalReport",
    "StaffActionRequest",
    "OrganApprovalDecision",
    "validate_cpf",
    "CheckoutRequest",
    "AsaasWebhookPayload",
    "PaymentResponse",
    "CertificateIssueRequest",
    "ContentBlock",
    "Margins",
    "DocumentTemplateCreate",
    "DocumentTemplateUpdate",
    "TemplatePreviewRequest",
    "SystemSettingsUpdate",
    "PaymentSettingsUpdate",
    "WebhookTestRequest"
]
