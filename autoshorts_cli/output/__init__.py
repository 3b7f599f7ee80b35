"""Output formatting utilities."""

from autoshorts_cli.output.table import print_table, print_job, print_jobs, print_moments, print_plan
from autoshorts_cli.output.progress import Spinner

__all__ = ["print_table", "print_job", "print_jobs", "print_moments", "print_plan", "Spinner"]
