"""CLI commands."""

from autoshorts_cli.commands.jobs import (
    create_command,
    run_command,
    advance_command,
    resume_command,
    retry_command,
    cancel_command,
    status_command,
    jobs_command,
)
from autoshorts_cli.commands.moments import moments_command, confirm_command
from autoshorts_cli.commands.plano import plano_validate_command, plano_init_command, plano_preview_command
from autoshorts_cli.commands.config import config_command

__all__ = [
    "create_command",
    "run_command",
    "advance_command",
    "resume_command",
    "retry_command",
    "cancel_command",
    "status_command",
    "jobs_command",
    "moments_command",
    "confirm_command",
    "plano_validate_command",
    "plano_init_command",
    "plano_preview_command",
    "config_command",
]
