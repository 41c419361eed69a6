"""
Portal de Matrículas - Domain Errors
Erros de regra de negócio levantados pelos serviços e convertidos em HTTP pela API
"""


class PortalError(Exception):
    """Erro base do portal"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):
    status_code = 404


class FeeScheduleError(PortalError):
    """Duração sem entrada na tabela de taxas"""
    status_code = 422


class InvalidTransitionError(PortalError):
    """Transição de status não permitida pela máquina de estados"""
    status_code = 409


class ConcurrentUpdateError(PortalError):
    """O registro mudou de status entre a leitura e a escrita"""
    status_code = 409


class DuplicatePaymentError(PortalError):
    status_code = 409


class PaymentValidationError(PortalError):
    status_code = 422


class PaymentConfigurationError(PortalError):
    status_code = 503


class PaymentGatewayError(PortalError):
    """Falha na comunicação com o Asaas"""
    status_code = 502


class CertificateNotEligibleError(PortalError):
    status_code = 409


class UnauthorizedError(PortalError):
    """Token do webhook do gateway ausente ou inválido"""
    status_code = 401
