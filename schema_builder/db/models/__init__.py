from .base import Base, TimestampMixin
from .saved_schema import SavedSchema
