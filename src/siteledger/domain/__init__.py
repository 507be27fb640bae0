"""Domain layer for siteledger."""

__all__ = [
    "TransactionImportService",
    "BatchService",
    "CategoryMappingService",
    "EntityService",
]


# Services import the database layer, which imports domain entities; load lazily
def __getattr__(name):
    if name == "TransactionImportService":
        from siteledger.domain.importer import TransactionImportService
        return TransactionImportService
    if name == "BatchService":
        from siteledger.domain.batch import BatchService
        return BatchService
    if name == "CategoryMappingService":
        from siteledger.domain.categories import CategoryMappingService
        return CategoryMappingService
    if name == "EntityService":
        from siteledger.domain.entity import EntityService
        return EntityService
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
