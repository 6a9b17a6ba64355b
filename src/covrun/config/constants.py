"""Configuration constants.

Values here are protocol constraints and pins that should NOT float with user
configuration. For configurable values, see models.py.
"""

# =============================================================================
# Coverage Tool Pin
# =============================================================================
# grcov 0.8.3 fails to build with `cargo install` on the nightly toolchain this
# pipeline provisions. Bump GRCOV_PINNED_VERSION only after re-validating that
# the newer release builds; the regression test in tests/config/test_constants.py
# fails on purpose when this changes.

GRCOV_PINNED_VERSION = "0.8.2"
"""Exact grcov release installed by the Dependency Installer."""

GRCOV_KNOWN_BROKEN_VERSION = "0.8.3"
"""First grcov release known to fail to build. Pins at or above it need an explicit override."""

COVERAGE_TOOL_NAME = "grcov"

FLOATING_VERSION_MARKERS = frozenset({"", "*", "latest", "newest", "stable"})
"""Version strings that would let cargo resolve whatever is newest."""

VERSION_RANGE_PREFIXES = ("^", "~", ">", "<", "=")
"""Cargo version requirement operators. A pin must be a bare version."""

# =============================================================================
# Toolchain
# =============================================================================

TOOLCHAIN_CHANNEL = "nightly"
"""-Zprofile is unstable; only nightly accepts it."""

TOOLCHAIN_PROFILE = "minimal"

# =============================================================================
# Trigger
# =============================================================================

DEFAULT_PRIMARY_BRANCH = "master"

PUSH_EVENTS = frozenset({"push"})
PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})

BRANCH_REF_PREFIX = "refs/heads/"

# =============================================================================
# Test / Report Layout
# =============================================================================

INTEGRATION_TEST_FEATURE = "integration-test"

DEFAULT_BUILD_DIR = "./target/debug/"
DEFAULT_REPORT_DIR = "./coverage/reports/"
DEFAULT_REPORT_FILENAME = "lcov.info"

RAW_ARTIFACT_SUFFIX = ".gcda"
"""Counter files written by -Zprofile instrumented binaries at exit."""

# =============================================================================
# Upload
# =============================================================================

CODECOV_DEFAULT_URL = "https://codecov.io"
CODECOV_TOKEN_ENV = "CODECOV_TOKEN"
CODECOV_SERVICE = "github-actions"

CODECOV_EOF_MARKER = "<<<<<< EOF"
CODECOV_NETWORK_MARKER = "<<<<<< network"

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_TEST_FAILURE = 1
EXIT_PROVISION_FAILURE = 3
EXIT_INSTALL_FAILURE = 4
EXIT_REPORT_FAILURE = 6
EXIT_UPLOAD_FAILURE = 7
EXIT_SKIPPED = 78
"""Matches the "neutral" exit used by CI wrappers to mean "nothing to do"."""
