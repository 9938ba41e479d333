"""Exception types raised by the mailer pipeline."""


class LogMailerError(Exception):
    """Base class for all log mailer errors."""


class StartupConnectivityError(LogMailerError):
    """The mail server or the supervisor was unreachable at startup."""


class RenderError(LogMailerError):
    """The email template reported errors while rendering."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "template render failed")


class SendError(LogMailerError):
    """The mail transport failed to hand off a message."""
