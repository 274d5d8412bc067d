"""
Exception hierarchy for nftpersona.

  NftPersonaError           base, carries a message and a details dict
  ├── UpstreamDataError     blockchain data provider unreachable or malformed
  │   └── GatewayUnreachableError   liveness probe failed
  ├── GenerationError       text-generation provider failed
  │   └── ResponseParseError        reply had no usable JSON
  └── ConfigError           missing credential or bad configuration

The gateway, cache and persona matcher turn these into degraded results.
Classifiers and the provider-backed synthesizer let them propagate.
"""


class NftPersonaError(Exception):
    """Base exception for all nftpersona errors."""

    error_code: str = "unknown_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class UpstreamDataError(NftPersonaError):
    """Blockchain data provider returned an error or an unusable payload."""

    error_code = "upstream_data_error"


class GatewayUnreachableError(UpstreamDataError):
    """Provider did not answer the liveness probe."""

    error_code = "gateway_unreachable"


class GenerationError(NftPersonaError):
    """Text-generation provider call failed."""

    error_code = "generation_error"


class ResponseParseError(GenerationError):
    """Generated text did not contain the expected JSON object."""

    error_code = "response_parse_error"


class ConfigError(NftPersonaError):
    """Required configuration or credential is missing."""

    error_code = "config_error"
