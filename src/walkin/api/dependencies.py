from __future__ import annotations

from walkin.infrastructure.db.repositories.location_repo import SqlAlchemyLocationRepository
from walkin.infrastructure.payments.stripe_gateway import StripePaymentGateway
from walkin.infrastructure.settings import load_settings


def location_repository() -> SqlAlchemyLocationRepository:
    return SqlAlchemyLocationRepository(
        default_radius_meters=load_settings().geofence_default_radius_meters
    )


def payment_gateway() -> StripePaymentGateway:
    settings = load_settings()
    return StripePaymentGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        statement_descriptor=settings.stripe_statement_descriptor,
    )
