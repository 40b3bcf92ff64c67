# printdesk/modules/orders/exceptions.py
# Domain-specific exceptions for order lifecycle and agent assignment

from typing import List

from printdesk.core.exceptions import (
    ConflictError, ForbiddenError, IneligibleStateError, InputValidationError, NotFoundError,
)


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str):
        super().__init__(f"Order '{order_id}' not found.")
        self.order_id = order_id


class AlreadyAssignedError(ConflictError):
    def __init__(self, order_id: str):
        super().__init__(f"Order '{order_id}' is already assigned to an agent.")
        self.order_id = order_id


class NotAssignedError(ConflictError):
    def __init__(self, order_id: str):
        super().__init__(f"Order '{order_id}' is not currently assigned to any agent.")
        self.order_id = order_id


class OrderAssignedConflictError(ConflictError):
    def __init__(self, order_id: str, action: str):
        super().__init__(f"Cannot {action} order '{order_id}' while an agent is assigned. Unassign first.")
        self.order_id = order_id


class IneligibleDeliveryTypeError(IneligibleStateError):
    def __init__(self, order_id: str, delivery_type: str):
        super().__init__(f"Order '{order_id}' uses '{delivery_type}' delivery; only 'own' delivery orders take agents.")
        self.order_id = order_id
        self.delivery_type = delivery_type


class AgentUnavailableError(IneligibleStateError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent '{agent_id}' is not active or not approved.")
        self.agent_id = agent_id


class AgentNotAssignedError(ForbiddenError):
    def __init__(self, agent_id: str, order_id: str):
        super().__init__(f"Agent '{agent_id}' is not assigned to order '{order_id}'.")
        self.agent_id = agent_id
        self.order_id = order_id


class DeliveryAlreadyCompletedError(ConflictError):
    def __init__(self, order_id: str):
        super().__init__(f"Delivery for order '{order_id}' was already completed.")
        self.order_id = order_id


class ConcurrentModificationError(ConflictError):
    def __init__(self, collection: str, key: str):
        super().__init__(f"'{collection}/{key}' changed while the operation was in progress. Nothing was written; retry.")
        self.collection = collection
        self.key = key


class BulkValidationError(InputValidationError):
    def __init__(self, message: str, errors: List[str]):
        super().__init__(message, details=errors)
        self.errors = errors
