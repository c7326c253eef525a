# Import the declarative base
from app.db.base import Base

# Import all models for Alembic/SQLAlchemy discovery
# Note: These imports are required so that they register themselves on Base.metadata
from app.models.vessel import Vessel  # noqa: F401
from app.models.shipment import Shipment  # noqa: F401
from app.models.migration_run import MigrationRun  # noqa: F401
