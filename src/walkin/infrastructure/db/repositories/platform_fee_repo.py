from __future__ import annotations

from walkin.domain.payment.fees import PlatformFee
from walkin.infrastructure.db.models.platform_fee import PlatformFeeModel


def to_platform_fee_model(fee: PlatformFee) -> PlatformFeeModel:
    model = PlatformFeeModel(
        order_id=str(fee.order_id),
        gross_cents=fee.gross_cents,
        platform_fee_cents=fee.platform_fee_cents,
        gateway_fee_cents=fee.gateway_fee_cents,
        restaurant_payout_cents=fee.restaurant_payout_cents,
        platform_net_cents=fee.platform_net_cents,
        currency=fee.currency,
        gateway_charge_id=fee.gateway_charge_id,
        gateway_balance_transaction_id=fee.gateway_balance_transaction_id,
    )
    if fee.created_at is not None:
        model.created_at = fee.created_at
    return model
