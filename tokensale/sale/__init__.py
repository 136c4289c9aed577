from tokensale.sale.cap_gate import CapGate
from tokensale.sale.contributions import ContributionLedger, ContributionRecord
from tokensale.sale.errors import (
    BelowMinimumContribution,
    CapExceeded,
    CrowdsaleError,
    InvalidTimeRange,
    SaleNotOpen,
    Unauthorized,
)
from tokensale.sale.time_gate import TimeGate

__all__ = [
    'BelowMinimumContribution',
    'CapExceeded',
    'CapGate',
    'ContributionLedger',
    'ContributionRecord',
    'CrowdsaleError',
    'InvalidTimeRange',
    'SaleNotOpen',
    'TimeGate',
    'Unauthorized',
]
