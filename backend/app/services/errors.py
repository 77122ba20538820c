"""
Exceptions used inside the verification core.

Only the last category (anything not listed here) is allowed to escape the
pipeline. The rest are recovered where they are raised:

- CollaboratorUnavailableError / ResponseParseError: caught at the agent
  boundary and turned into a neutral AgentResult.
- InvalidInputError / AccountNotFoundError: turned into a VerificationRefusal
  by the pipeline.
"""


class CollaboratorUnavailableError(Exception):
    """The search or text-generation provider is missing, down or timed out."""


class ResponseParseError(Exception):
    """The text-generation provider answered, but not with the expected JSON."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class InvalidInputError(Exception):
    """Text is empty, too short or too long to verify."""


class AccountNotFoundError(Exception):
    """No quota record exists for the account id."""

    def __init__(self, account_id: int):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id
