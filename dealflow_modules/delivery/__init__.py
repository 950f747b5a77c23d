"""Delivery module: programs, sign-offs and invoice eligibility."""

from dealflow_modules.delivery.models import DeliveryStatus, Program, SignOffKind
from dealflow_modules.delivery.service import DeliveryService

__all__ = ["DeliveryService", "DeliveryStatus", "Program", "SignOffKind"]
