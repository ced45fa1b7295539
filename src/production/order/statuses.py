"""Enumerations shared by the production order aggregate and its policies."""

from enum import Enum


class OrderStatus(Enum):
    PENDING_CONSULTATION = "pending_consultation"
    PENDING_ORDER_RECEIVED = "pending_order_received"
    ORDER_RECEIVED = "order_received"
    IN_PRODUCTION = "in_production"
    PENDING_APPROVAL = "pending_approval"
    READY_FOR_DELIVERY = "ready_for_delivery"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}


class ListingType(Enum):
    SERVICE = "Service"
    CUSTOM_SERVICE = "CustomService"


class ProofStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"
    REJECTED = "rejected"
    INFORMATIONAL = "informational"  # shared on orders without proof approval


class ProofDecision(Enum):
    APPROVE = "approve"
    REQUEST_REVISION = "request_revision"
    REJECT = "reject"


class ActorRole(Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ARBITER = "arbiter"
    SYSTEM = "system"
