from .schema_repo import SchemaRepo
