"""Rails application kickoff template: scripted project bootstrapping."""

from .config import RunOptions, load_options
from .context import RunContext
from .errors import KickoffError
from .orchestrator import Orchestrator, RunSummary

__all__ = [
    "KickoffError",
    "Orchestrator",
    "RunContext",
    "RunOptions",
    "RunSummary",
    "load_options",
]
