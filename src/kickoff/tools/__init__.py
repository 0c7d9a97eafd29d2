"""Building blocks the template steps are written with."""

from .commands import CommandResult, CommandRunner, ExternalCommandError
from .deferred import DeferredAction, DeferredActionQueue
from .manifest import GemfileManifest
from .mutator import AnchorNotFoundError, FileConflictError, MissingFileError, TextMutator
from .prompts import FixedAnswerResolver, InteractivePromptResolver, PromptResolver, build_resolver
from .remote import RemoteFetchError, fetch_text
from .vcs import Checkpoint, CheckpointRecorder, GitError, GitRepository

__all__ = [
    "AnchorNotFoundError",
    "Checkpoint",
    "CheckpointRecorder",
    "CommandResult",
    "CommandRunner",
    "DeferredAction",
    "DeferredActionQueue",
    "ExternalCommandError",
    "FileConflictError",
    "FixedAnswerResolver",
    "GemfileManifest",
    "GitError",
    "GitRepository",
    "InteractivePromptResolver",
    "MissingFileError",
    "PromptResolver",
    "RemoteFetchError",
    "TextMutator",
    "build_resolver",
    "fetch_text",
]
