# Porteria: Database Models
# Import all models here for SQLAlchemy discovery

from porteria.models.user import User                      # noqa
from porteria.models.category import Category              # noqa
from porteria.models.shift import Shift, ShiftState        # noqa
from porteria.models.vehicle_record import VehicleRecord, RecordState  # noqa
