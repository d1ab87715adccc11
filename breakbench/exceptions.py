"""
BreakBench v0.1.0

Exception hierarchy for BreakBench.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""


class BreakBenchError(Exception):
    """Base exception for all BreakBench errors."""
    pass


class ConfigurationError(BreakBenchError):
    """Raised when run configuration is unusable (bad rate list, missing region, ...)."""
    pass


class SamplingExhaustion(BreakBenchError):
    """
    Raised when a sampler cannot reach its minimum yield within bounded retries.

    The partial result is attached so callers can keep going with fewer reads.
    """

    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


class ExternalToolError(BreakBenchError):
    """Error related to an external tool execution."""

    def __init__(self, message, command=None, returncode=None, stderr=None):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self):
        msg = super().__str__()
        if self.command:
            msg += f"\n  Command: {' '.join(map(str, self.command))}"
        if self.returncode is not None:
            msg += f"\n  Return Code: {self.returncode}"
        if self.stderr:
            msg += f"\n  Stderr: {self.stderr[:1000]}"
        return msg
