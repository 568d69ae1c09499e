"""
Error taxonomy for the resource wizard pipeline.

- ActionValidationError: rejected before any write, reported verbatim.
- NotFoundError: a referenced allocation/user/project is absent. Reported
  per action, never fatal to a batch.
- UpstreamError: the datastore or the language model is unavailable. Aborts
  the current stage and is never retried inside the pipeline.
"""


class WizardError(Exception):
    """Base class for every error the wizard reports to a caller."""
    pass


class ActionValidationError(WizardError):
    """Raised when action parameters fail validation."""
    pass


class NotFoundError(WizardError):
    """Raised when a referenced entity does not exist."""
    pass


class UpstreamError(WizardError):
    """Raised when an external collaborator fails."""
    pass


class StoreError(UpstreamError):
    """Raised when the relational datastore cannot be read or written."""
    pass


class AgentError(UpstreamError):
    """Raised when the language model call fails or returns malformed output."""
    pass
