"""SQLAlchemy models for Propman.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs. If you add a new model, import it in this file.
"""

from propman.models.apartment import Apartment
from propman.models.booking import Booking
from propman.models.email import Email
from propman.models.payment import Payment
from propman.models.service_request import ServiceRequest
from propman.models.user import User
from propman.models.utility_reading import UtilityReading
from propman.models.village import Village

__all__ = [
    "Apartment",
    "Booking",
    "Email",
    "Payment",
    "ServiceRequest",
    "User",
    "UtilityReading",
    "Village",
]
