"""
Configuration management for the conformance test harness.
"""

import os
from dataclasses import dataclass

from htlc_escrow.config import env_flag


@dataclass
class HarnessConfig:
    """Main configuration for the test harness."""
    # Paths
    vector_dir: str = "vectors"
    result_dir: str = "results"

    # Execution settings
    stop_on_first_failure: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables."""
        config = cls()

        # Load paths
        config.vector_dir = os.environ.get("VECTOR_DIR", config.vector_dir)
        config.result_dir = os.environ.get("RESULT_DIR", config.result_dir)

        # Load settings
        config.verbose = env_flag("VERBOSE")
        config.stop_on_first_failure = env_flag("STOP_ON_FIRST_FAILURE")

        return config
