from app.core.models.guardian import Guardian
from app.core.models.child import Child
from app.core.models.cafeteria_enrollment import CafeteriaEnrollment
from app.core.models.cafeteria_cancellation import CafeteriaCancellation
from app.core.models.extra_day_request import ExtraDayRequest
from app.core.models.cafeteria_invitation import CafeteriaInvitation
from app.core.models.holiday import Holiday
from app.core.models.pricing_configuration import PricingConfiguration

__all__ = [
    "Guardian",
    "Child",
    "CafeteriaEnrollment",
    "CafeteriaCancellation",
    "ExtraDayRequest",
    "CafeteriaInvitation",
    "Holiday",
    "PricingConfiguration",
]
