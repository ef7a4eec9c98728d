"""Migration discovery and idempotency checks.

Migrations are applied with ``supabase db push``; this module only finds
them (``NNN_description.sql``, ordered by prefix) and lints them against
the re-runnable contract:

    1. CREATE TABLE / INDEX / EXTENSION use IF NOT EXISTS.
    2. CREATE FUNCTION uses CREATE OR REPLACE.
    3. CREATE POLICY is preceded by DROP POLICY IF EXISTS.
    4. No bare DROP TABLE / DROP INDEX.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

_MIGRATION_RE = re.compile(r'^(\d{3})_.*\.sql$')

MIGRATIONS_DIR = Path(__file__).parent


@dataclass(frozen=True, slots=True)
class MigrationFile:
    sequence: int
    filename: str
    path: Path


@dataclass
class ValidationResult:
    path: Path
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


_UNSAFE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r'^\s*create\s+table\s+(?!.*if\s+not\s+exists)', re.IGNORECASE),
        'CREATE TABLE without IF NOT EXISTS',
    ),
    (
        re.compile(r'^\s*create\s+(unique\s+)?index\s+(?!.*if\s+not\s+exists)', re.IGNORECASE),
        'CREATE INDEX without IF NOT EXISTS',
    ),
    (
        re.compile(r'^\s*create\s+extension\s+(?!.*if\s+not\s+exists)', re.IGNORECASE),
        'CREATE EXTENSION without IF NOT EXISTS',
    ),
    (
        re.compile(r'^\s*create\s+function\s+', re.IGNORECASE),
        'CREATE FUNCTION without OR REPLACE',
    ),
    (
        re.compile(r'^\s*drop\s+table\s+(?!.*if\s+exists)', re.IGNORECASE),
        'DROP TABLE without IF EXISTS',
    ),
    (
        re.compile(r'^\s*drop\s+index\s+(?!.*if\s+exists)', re.IGNORECASE),
        'DROP INDEX without IF EXISTS',
    ),
]

_CREATE_POLICY_RE = re.compile(r'^\s*create\s+policy\s+(\S+)', re.IGNORECASE)
_DROP_POLICY_RE = re.compile(r'^\s*drop\s+policy\s+if\s+exists\s+(\S+)', re.IGNORECASE)


def discover_migrations(directory: Path | None = None) -> list[MigrationFile]:
    """Return migration files sorted by sequence number.

    Raises:
        ValueError: Two files share a sequence number.
    """
    d = directory or MIGRATIONS_DIR
    results: list[MigrationFile] = []
    seen: dict[int, str] = {}

    for p in sorted(d.iterdir()):
        m = _MIGRATION_RE.match(p.name)
        if not p.is_file() or not m:
            continue
        seq = int(m.group(1))
        if seq in seen:
            raise ValueError(
                f'Duplicate migration sequence {seq:03d}: {seen[seq]} and {p.name}'
            )
        seen[seq] = p.name
        results.append(MigrationFile(sequence=seq, filename=p.name, path=p))

    results.sort(key=lambda mf: mf.sequence)
    return results


def validate_idempotency(sql_path: Path) -> ValidationResult:
    result = ValidationResult(path=sql_path)
    dropped_policies: set[str] = set()

    for i, line in enumerate(sql_path.read_text().splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith('--'):
            continue

        dp = _DROP_POLICY_RE.match(stripped)
        if dp:
            dropped_policies.add(dp.group(1).lower())
            continue

        cp = _CREATE_POLICY_RE.match(stripped)
        if cp:
            if cp.group(1).lower() not in dropped_policies:
                result.errors.append(
                    f'Line {i}: CREATE POLICY {cp.group(1)} without preceding '
                    f'DROP POLICY IF EXISTS'
                )
            continue

        for pattern, msg in _UNSAFE_PATTERNS:
            if pattern.search(stripped):
                result.errors.append(f'Line {i}: {msg}')

    return result
