# PlateCheck Database Models
# Import all models here for SQLAlchemy discovery

from platecheck.models.kv_entry import KeyValueEntry   # noqa
