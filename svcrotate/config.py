"""Rotation configuration — all run parameters in one place."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from svcrotate.errors import ConfigurationError
from svcrotate.passwords.generator import DEFAULT_GROUPS, DEFAULT_LENGTH, PasswordGenerator
from svcrotate.rotation.models import Role


class UnattendedAccountTarget(BaseModel):
    """Secure store target backing a service application's unattended account."""

    service_application: str = Field(description="Service application display name")
    target_id: str = Field(description="Secure store target application id")


def _default_unattended_targets() -> dict[Role, UnattendedAccountTarget]:
    return {
        Role.EXCEL: UnattendedAccountTarget(
            service_application="Excel Services Application",
            target_id="ExcelUnattendedAccount",
        ),
        Role.VISIO: UnattendedAccountTarget(
            service_application="Visio Graphics Service",
            target_id="VisioUnattendedAccount",
        ),
        Role.PERFORMANCE_POINT: UnattendedAccountTarget(
            service_application="PerformancePoint Service Application",
            target_id="PerformancePointUnattendedAccount",
        ),
    }


class RotationConfig(BaseModel):
    """Configuration for a rotation run.

    Usage:
        config = RotationConfig(password_length=32)
        orchestrator = RotationOrchestrator(platform, config)
    """

    # Password generation
    password_length: int = Field(default=DEFAULT_LENGTH, description="Secret length")
    character_groups: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GROUPS),
        description="Ordered character groups, each represented at least once",
    )
    first_character_group: str | None = Field(
        default=None, description="Group the first character is always drawn from"
    )

    # Convergence
    convergence_initial_delay: float = Field(default=10.0, ge=0)
    convergence_poll_interval: float = Field(default=5.0, gt=0)
    convergence_timeout: float = Field(default=600.0, ge=0)
    first_account_cycles: int = Field(
        default=2, ge=1, description="Write+converge cycles for the first account of a run"
    )
    warmup_pause: float = Field(default=20.0, ge=0, description="Pause between repeated cycles")

    # Start-and-wait for the directory sync service
    start_wait_initial_delay: float = Field(default=5.0, ge=0)
    start_wait_interval: float = Field(default=2.0, gt=0)
    start_wait_timeout: float = Field(default=900.0, ge=0)

    # Role targets
    sophos_services: list[str] = Field(
        default_factory=lambda: ["SAVService", "Sophos Agent", "Sophos AutoUpdate Service"]
    )
    windows_services: list[str] = Field(
        default_factory=lambda: ["SPAdminV4", "SPTraceV4"]
    )
    workflow_hosts: list[str] = Field(
        default_factory=list, description="Restrict workflow updates to these hosts (empty = all)"
    )
    unattended_targets: dict[Role, UnattendedAccountTarget] = Field(
        default_factory=_default_unattended_targets
    )
    secure_store_claims_group: str = Field(default="NT AUTHORITY\\Authenticated Users")
    secure_store_admin_principal: str | None = Field(
        default=None, description="Target admin; defaults to the rotated identity"
    )

    # Output
    transcript_dir: str = Field(default="logs", description="Directory for run transcripts")
    show_progress: bool = Field(default=True, description="Show a progress bar over accounts")

    @classmethod
    def load(cls, path: Path) -> RotationConfig:
        """Load a YAML or JSON configuration file."""
        try:
            with open(path, "r") as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
            return cls.model_validate(data or {})
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration {path}: {e}") from e

    def password_generator(self) -> PasswordGenerator:
        """Build the generator. Raises ConfigurationError for bad parameters."""
        return PasswordGenerator(
            length=self.password_length,
            groups=self.character_groups,
            first_group=self.first_character_group,
        )
