"""
Fee policies.

The node either reports EIP-1559 fee data or only a legacy gas price. That
choice is made once, here, and the transaction builder only ever sees a
resolved ``(max_fee_per_gas, max_priority_fee_per_gas)`` pair.
"""
import logging
from typing import Annotated, Any, Literal, Mapping, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import DEFAULT_GAS_PRICE_WEI
from .models import Uint256

logger = logging.getLogger(__name__)


class Eip1559Fees(BaseModel):
    """Dynamic fee pair reported by an EIP-1559 node"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["eip1559"] = "eip1559"
    max_fee_per_gas: Uint256
    max_priority_fee_per_gas: Uint256

    @model_validator(mode="after")
    def _check_tip_below_cap(self) -> "Eip1559Fees":
        if self.max_priority_fee_per_gas > self.max_fee_per_gas:
            raise ValueError(
                f"max_priority_fee_per_gas ({self.max_priority_fee_per_gas}) "
                f"exceeds max_fee_per_gas ({self.max_fee_per_gas})"
            )
        return self


class LegacyFees(BaseModel):
    """Single gas price from a node without EIP-1559 fee data"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["legacy"] = "legacy"
    gas_price: Uint256


FeePolicy = Annotated[Union[Eip1559Fees, LegacyFees], Field(discriminator="kind")]


class ResolvedFees(NamedTuple):
    max_fee_per_gas: int
    max_priority_fee_per_gas: int


def resolve_fees(policy: Union[Eip1559Fees, LegacyFees]) -> ResolvedFees:
    """
    Collapse a fee policy into the pair a type-4 transaction carries.

    A legacy gas price is used for both the cap and the tip.
    """
    if isinstance(policy, Eip1559Fees):
        return ResolvedFees(policy.max_fee_per_gas, policy.max_priority_fee_per_gas)
    if isinstance(policy, LegacyFees):
        return ResolvedFees(policy.gas_price, policy.gas_price)
    raise TypeError(f"Unknown fee policy: {type(policy).__name__}")


def fee_policy_from_fee_data(
    fee_data: Mapping[str, Any],
    default_gas_price: int = DEFAULT_GAS_PRICE_WEI,
) -> Union[Eip1559Fees, LegacyFees]:
    """
    Pick a fee policy from a node fee snapshot.

    Args:
        fee_data: Mapping with any of ``maxFeePerGas``,
            ``maxPriorityFeePerGas`` and ``gasPrice`` (missing or None
            values are treated as unavailable)
        default_gas_price: Gas price used when the node reports nothing

    Returns:
        Eip1559Fees when both dynamic values are present, otherwise LegacyFees
    """
    max_fee: Optional[int] = fee_data.get("maxFeePerGas")
    max_priority_fee: Optional[int] = fee_data.get("maxPriorityFeePerGas")
    if max_fee and max_priority_fee:
        return Eip1559Fees(max_fee_per_gas=max_fee, max_priority_fee_per_gas=max_priority_fee)

    gas_price = fee_data.get("gasPrice")
    if not gas_price:
        logger.warning(f"Node reported no fee data, using default gas price {default_gas_price} wei")
        gas_price = default_gas_price
    return LegacyFees(gas_price=gas_price)
