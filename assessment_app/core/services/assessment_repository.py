"""Service for storing assessment definitions."""

from __future__ import annotations

from dataclasses import replace

from assessment_app.core.errors import NotFoundError
from assessment_app.core.models import AssessmentDefinition
from assessment_app.core.validation import validate_definition


class AssessmentRepository:
    """Holds validated definitions keyed by assessment id."""

    def __init__(self) -> None:
        self._definitions: dict[str, AssessmentDefinition] = {}

    def load_definitions(self, definitions: list[AssessmentDefinition]) -> None:
        """Replace every stored definition."""
        prepared = [validate_definition(definition) for definition in definitions]
        self._definitions = {definition.id: definition for definition in prepared}

    def add_definition(self, definition: AssessmentDefinition) -> None:
        self._definitions[definition.id] = validate_definition(definition)

    def get_definition(self, assessment_id: str) -> AssessmentDefinition:
        definition = self._definitions.get(assessment_id)
        if definition is None:
            raise NotFoundError(f"Assessment {assessment_id} not found")
        return definition

    def get_definitions(self) -> list[AssessmentDefinition]:
        return list(self._definitions.values())

    def delete_definition(self, assessment_id: str) -> None:
        if self._definitions.pop(assessment_id, None) is None:
            raise NotFoundError(f"Assessment {assessment_id} not found")

    def set_global_active(self, assessment_id: str, active: bool) -> AssessmentDefinition:
        """Flip the global activation flag; definitions are frozen, so the entry is replaced."""
        updated = replace(self.get_definition(assessment_id), global_active=active)
        self._definitions[assessment_id] = updated
        return updated

    def clear(self) -> None:
        self._definitions = {}
