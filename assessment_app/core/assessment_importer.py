"""Utilities for importing assessments from a human-friendly text file.

File format: one header block followed by question blocks, separated by
blank lines or '---'.

    ID: algebra-1
    TITLE: Algebra check
    DESCRIPTION: Optional one-line description
    KIND: quiz|evaluation      (optional, defaults to quiz)
    START: 2025-01-10T00:00:00+00:00
    END: 2025-01-12T00:00:00+00:00
    ACTIVE: yes|no

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    C: ...                     (two options minimum, up to H)
    CORRECT: A|B|...
    TIMELIMIT: seconds         (optional, at least 10)
    EXPLAIN B: Why B is right  (optional, one per option)
    ATTACHMENT: https://...    (optional)

Unparseable START/END values do not abort the import: the schedule field is
left empty and the assessment resolves as disabled until it is fixed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from pathlib import Path

from assessment_app.constants.assessment_constants import DEFAULT_QUESTION_SECONDS
from assessment_app.core.availability import parse_instant
from assessment_app.core.errors import ValidationError
from assessment_app.core.models import (
    AssessmentDefinition,
    AssessmentKind,
    Option,
    Question,
    Schedule,
)
from assessment_app.core.validation import validate_definition

logger = logging.getLogger(__name__)


class AssessmentImportError(ValidationError):
    """Raised when an assessment definition cannot be parsed."""


@dataclass(slots=True)
class ImportedAssessment:
    """Container for an imported definition and where it came from."""

    source_path: Path
    definition: AssessmentDefinition


_OPTION_ORDER = ["A", "B", "C", "D", "E", "F", "G", "H"]
_HEADER_KEYS = ("ID", "TITLE", "DESCRIPTION", "KIND", "START", "END", "ACTIVE")
_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def load_assessment_from_file(file_path: Path) -> ImportedAssessment:
    text = file_path.read_text(encoding="utf-8")
    definition = parse_assessment_text(text, fallback_id=file_path.stem)
    return ImportedAssessment(source_path=file_path, definition=definition)


def load_assessments_from_directory(directory: Path) -> list[ImportedAssessment]:
    """Import every ``*.txt`` file in ``directory``; broken files are logged and skipped."""
    imported: list[ImportedAssessment] = []
    if not directory.is_dir():
        logger.warning("Assessment directory %s does not exist", directory)
        return imported
    for file_path in sorted(directory.glob("*.txt")):
        try:
            imported.append(load_assessment_from_file(file_path))
        except AssessmentImportError as exc:
            logger.error("Skipping %s: %s", file_path.name, exc)
    return imported


def parse_assessment_text(text: str, fallback_id: str = "") -> AssessmentDefinition:
    blocks = _split_blocks(text)
    if not blocks:
        raise AssessmentImportError("Assessment file is empty.")

    header: dict[str, str] = {}
    if not _is_question_block(blocks[0]):
        header = _parse_header(blocks.pop(0))

    assessment_id = header.get("ID") or fallback_id
    if not assessment_id:
        raise AssessmentImportError("Assessment ID missing (ID: ...)")

    questions = tuple(
        _parse_block(block, question_id=f"{assessment_id}-q{index + 1}")
        for index, block in enumerate(blocks)
    )
    if not questions:
        raise AssessmentImportError("Assessment file did not contain any questions.")

    definition = AssessmentDefinition(
        id=assessment_id,
        name=header.get("TITLE") or assessment_id,
        description=header.get("DESCRIPTION") or None,
        kind=_parse_kind(header.get("KIND")),
        questions=questions,
        schedule=Schedule(
            start=_parse_schedule_value(header, "START"),
            end=_parse_schedule_value(header, "END"),
        ),
        global_active=_parse_flag(header.get("ACTIVE", "yes")),
    )
    try:
        return validate_definition(definition)
    except AssessmentImportError:
        raise
    except ValidationError as exc:
        raise AssessmentImportError(str(exc)) from exc


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _is_question_block(block: str) -> bool:
    return any(line.strip().upper().startswith("Q:") for line in block.splitlines())


def _parse_header(block: str) -> dict[str, str]:
    header: dict[str, str] = {}
    for raw_line in block.splitlines():
        line = raw_line.strip()
        key, separator, value = line.partition(":")
        key = key.strip().upper()
        if not separator or key not in _HEADER_KEYS:
            raise AssessmentImportError(f"Unknown header line: '{line}'.")
        header[key] = value.strip()
    return header


def _parse_kind(raw_value: str | None) -> AssessmentKind:
    if not raw_value:
        return AssessmentKind.QUIZ
    try:
        return AssessmentKind(raw_value.strip().lower())
    except ValueError as exc:
        raise AssessmentImportError(f"KIND must be 'quiz' or 'evaluation', got '{raw_value}'.") from exc


def _parse_flag(raw_value: str) -> bool:
    lowered = raw_value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise AssessmentImportError(f"ACTIVE must be yes or no, got '{raw_value}'.")


def _parse_schedule_value(header: dict[str, str], key: str) -> datetime | None:
    raw_value = header.get(key)
    parsed = parse_instant(raw_value)
    if parsed is None:
        logger.warning("Assessment %s has an unusable %s value: %r", header.get("ID"), key, raw_value)
    return parsed


def _parse_block(block: str, question_id: str) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    explanations: dict[str, str] = {}
    correct_letter: str | None = None
    time_limit_seconds = DEFAULT_QUESTION_SECONDS
    attachment_url: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("TIMELIMIT:"):
            raw_value = line.split(":", 1)[1].strip()
            try:
                time_limit_seconds = int(raw_value)
            except ValueError as exc:
                raise AssessmentImportError("TIMELIMIT must be an integer number of seconds.") from exc
            current_section = None
            continue

        if upper.startswith("ATTACHMENT:"):
            attachment_url = line.split(":", 1)[1].strip() or None
            current_section = None
            continue

        if upper.startswith("EXPLAIN "):
            marker, _, explanation = line.partition(":")
            letter = marker[len("EXPLAIN "):].strip().upper()
            if letter not in _OPTION_ORDER:
                raise AssessmentImportError(f"EXPLAIN refers to an unknown option: '{line}'.")
            explanations[letter] = explanation.strip()
            current_section = f"EXPLAIN {letter}"
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f"\n{line}"
        elif current_section and current_section.startswith("EXPLAIN "):
            letter = current_section.split(" ", 1)[1]
            explanations[letter] = explanations[letter] + f"\n{line}"
        else:
            raise AssessmentImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise AssessmentImportError("Question text missing (Q: ...)")

    letters = [letter for letter in _OPTION_ORDER if letter in options]
    if letters != _OPTION_ORDER[: len(letters)]:
        raise AssessmentImportError("Options must be lettered consecutively starting at A.")
    if correct_letter is None:
        raise AssessmentImportError("CORRECT is required for every question.")
    if correct_letter not in letters:
        raise AssessmentImportError(f"CORRECT must be one of {', '.join(letters)}.")
    unknown_explanations = set(explanations) - set(letters)
    if unknown_explanations:
        raise AssessmentImportError("EXPLAIN refers to an option that does not exist.")

    question_text = "\n".join(question_lines).strip()
    return Question(
        id=question_id,
        text=question_text,
        per_question_seconds=time_limit_seconds,
        options=tuple(
            Option(
                id=f"{question_id}-{letter.lower()}",
                text=options[letter].strip(),
                is_correct=letter == correct_letter,
                explanation=explanations.get(letter) or None,
            )
            for letter in letters
        ),
        attachment_url=attachment_url,
    )
