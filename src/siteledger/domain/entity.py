"""Candidate pool domain service: payees, clients, projects and aliases."""

from typing import Optional

from siteledger.database.base import Database
from siteledger.domain.entities import (
    AliasMatchType,
    CandidatePools,
    Client,
    EntityType,
    Payee,
    Project,
)
from siteledger.domain.errors import NotFoundError, ValidationError, entity_not_found


class EntityService:
    """Service for managing the records export rows are matched against."""

    def __init__(self, db: Database):
        """Initialize entity service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_payee(self, display_name: str) -> int:
        """Create a payee.

        Raises:
            ValidationError: If the name is empty
        """
        name = (display_name or "").strip()
        if not name:
            raise ValidationError("Payee name cannot be empty")
        return self.db.create_payee(name)

    def create_client(self, display_name: str, company_name: Optional[str] = None) -> int:
        """Create a client.

        Raises:
            ValidationError: If the name is empty
        """
        name = (display_name or "").strip()
        if not name:
            raise ValidationError("Client name cannot be empty")
        company = (company_name or "").strip() or None
        return self.db.create_client(name, company_name=company)

    def create_project(self, number: str, name: str = "") -> int:
        """Create a project.

        Raises:
            ValidationError: If the number is empty or already taken
        """
        number = (number or "").strip()
        if not number:
            raise ValidationError("Project number cannot be empty")
        return self.db.create_project(number, name=(name or "").strip())

    def add_alias(
        self,
        entity_type: EntityType | str,
        entity_id: int,
        alias: str,
        match_type: AliasMatchType | str = AliasMatchType.EXACT,
    ) -> int:
        """Add an alias used by the resolver before fuzzy matching.

        Args:
            entity_type: payee, client or project
            entity_id: ID of the aliased record
            alias: Text as it appears in exports
            match_type: exact, starts_with or contains

        Returns:
            Alias ID

        Raises:
            ValidationError: If the alias or a type is invalid
            NotFoundError: If the entity does not exist
        """
        alias = (alias or "").strip()
        if not alias:
            raise ValidationError("Alias cannot be empty")
        try:
            entity_type = EntityType(entity_type)
            match_type = AliasMatchType(match_type)
        except ValueError as e:
            raise ValidationError(str(e))
        if entity_type is EntityType.ACCOUNT:
            raise ValidationError("Accounts are mapped with category mappings, not aliases")
        if not self.db.entity_exists(entity_type, entity_id):
            raise NotFoundError(entity_not_found(entity_type.value, entity_id))
        return self.db.create_alias(entity_type, entity_id, alias, match_type)

    def list_payees(self) -> list[Payee]:
        return self.db.list_payees()

    def list_clients(self) -> list[Client]:
        return self.db.list_clients()

    def list_projects(self) -> list[Project]:
        return self.db.list_projects()

    def load_pools(self) -> CandidatePools:
        """Fetch every candidate pool and the category mappings once."""
        return CandidatePools(
            payees=tuple(self.db.list_payees()),
            clients=tuple(self.db.list_clients()),
            projects=tuple(self.db.list_projects()),
            mappings=tuple(self.db.list_category_mappings()),
        )
