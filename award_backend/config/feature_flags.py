"""
Feature Flags Configuration

Policy switches for the progression engine, loaded from environment variables.
Both default to the long-standing behaviour; flipping them is a product
decision, not a bug fix.
"""
import os


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


class FeatureFlags:
    """
    Feature flags for the award engine.

    FEATURE_ROUND_SCOPED_AUDIT:
        Off: any approved audit for the school counts toward Investigate,
        whichever round it was approved in.
        On: only an audit approved for the school's current round counts.

    FEATURE_CERTIFICATE_EVERY_ROUND:
        Off: only completing Act in round 1 issues a certificate.
        On: Act completion in every round issues that round's certificate.
    """

    FEATURE_ROUND_SCOPED_AUDIT: bool = get_bool_env('FEATURE_ROUND_SCOPED_AUDIT', False)
    FEATURE_CERTIFICATE_EVERY_ROUND: bool = get_bool_env('FEATURE_CERTIFICATE_EVERY_ROUND', False)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.startswith('FEATURE_') and isinstance(getattr(cls, key), bool)
        }
