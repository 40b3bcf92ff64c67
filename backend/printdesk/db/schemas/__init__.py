# printdesk/db/schemas/__init__.py
# Make schemas easily importable
from .common_schemas import MsgDetail, ErrorDetail, ErrorResponse
from .order_schemas import OrderDoc, OrderStatus, DeliveryType, TimelineEntry, BulkPolicy
from .agent_schemas import AgentDoc, AccountStanding, WorkCapacity, AgentPerformance
from .pricing_schemas import DeliveryPricingRuleDoc, PriceCalculation, CommissionSplit
from .earnings_schemas import EarningsReport, EarningsPeriod, DeliveryCompletionResult
