"""Runtime environments for the authorization service.

Used by Settings to choose environment-specific behaviour such as the log
renderer (JSON for testing/CI, coloured console for development).

Environments:
- DEVELOPMENT: Local development, in-memory identity provider allowed
- TESTING: Automated test execution with an isolated database
- CI: Continuous integration runs
- PRODUCTION: Production deployment
"""

from enum import Enum


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    CI = "ci"
    PRODUCTION = "production"
