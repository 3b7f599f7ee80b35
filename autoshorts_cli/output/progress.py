"""Progress display utilities."""

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn


console = Console()


class Spinner:
    """Simple spinner for indeterminate progress."""

    def __init__(self, text: str = "Working..."):
        self.text = text
        self._progress = None
        self._task = None

    def __enter__(self):
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task(self.text)
        return self

    def __exit__(self, *args):
        self._progress.__exit__(*args)

    def update(self, text: str):
        """Update spinner text."""
        if self._progress and self._task is not None:
            self._progress.update(self._task, description=text)
