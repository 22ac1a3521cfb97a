"""
Exceptions raised by vpcmaker.

AWS failures are not wrapped: botocore's ClientError propagates unchanged.
"""


class VpcMakerError(Exception):
    """Base class for vpcmaker errors."""


class ConfigError(VpcMakerError):
    """The desired-state file could not be parsed or validated."""


class CredentialsError(VpcMakerError):
    """The local credentials file is missing or incomplete."""


class WaitTimeout(VpcMakerError, TimeoutError):
    """A resource did not reach the expected state in time."""


class WaitCancelled(VpcMakerError):
    """A wait was interrupted through its cancellation event."""
