"""Balancing pipeline services."""

from atlas_balancer.services.balance_logger import BalanceLogger
from atlas_balancer.services.balancing_engine import AtlasBalancingEngine
from atlas_balancer.services.balancing_service import BalancingService
from atlas_balancer.services.weight_resolver import WeightResolver

__all__ = [
    "BalanceLogger",
    "AtlasBalancingEngine",
    "BalancingService",
    "WeightResolver",
]
