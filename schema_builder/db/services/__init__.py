from .schema_service import SchemaService, SchemaPage, SchemaNotFound
