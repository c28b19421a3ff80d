from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.exceptions import DeliveryError
from payslip_mailer.transport.factory import TransportFactory

__all__ = ["BaseTransport", "DeliveryError", "TransportFactory"]
