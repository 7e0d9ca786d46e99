APX_VERSION = "0.1.0"

CONFIG_FILE_NAME = ".apxrc"
LOG_DIR_NAME = "log"
LOG_FILE_NAME = "apx.log"

DEFAULT_ATOM_DIR_NAME = ".atom"
DEFAULT_ATOM_API_URL = "https://atom.io/api"
DEFAULT_ELECTRON_URL = "https://atom.io/download/electron"
DEFAULT_GITHUB_API_URL = "https://api.github.com"

LINUX_RESOURCE_PATHS = (
    "/usr/local/share/atom/resources/app.asar",
    "/usr/share/atom/resources/app.asar",
)
DARWIN_RESOURCE_FALLBACK = "/Applications/Atom.app/Contents/Resources/app.asar"
DARWIN_BUNDLE_QUERY = "kMDItemCFBundleIdentifier == 'com.github.atom'"
LINUX_BETA_RESOURCE_PATHS = (
    "/usr/local/share/atom-beta/resources/app.asar",
    "/usr/share/atom-beta/resources/app.asar",
)
DARWIN_BETA_RESOURCE_FALLBACK = "/Applications/Atom Beta.app/Contents/Resources/app.asar"
DARWIN_BETA_BUNDLE_QUERY = "kMDItemCFBundleIdentifier == 'com.github.atom.beta'"

PACKAGE_METADATA_FILE = "package.json"

# Environment variables
ENV_HOME = "HOME"
ENV_USERPROFILE = "USERPROFILE"
ENV_ATOM_HOME = "ATOM_HOME"
ENV_RESOURCE_PATH = "ATOM_RESOURCE_PATH"
ENV_API_URL = "ATOM_API_URL"
ENV_PACKAGES_URL = "ATOM_PACKAGES_URL"
ENV_ELECTRON_URL = "ATOM_ELECTRON_URL"
ENV_GITHUB_URL = "ATOM_GITHUB_URL"
ENV_ARCH = "ATOM_ARCH"
ENV_ATOM_VERSION = "ATOM_VERSION"
ENV_ELECTRON_VERSION = "ATOM_ELECTRON_VERSION"
ENV_CONFIG_PATH = "APX_CONFIG_PATH"
ENV_LOG_PATH = "APX_LOG_PATH"
ENV_LOG_LEVEL = "APX_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"

HTTP_TIMEOUT_SECONDS = 30.0
HTTP_USER_AGENT = f"apx/{APX_VERSION}"

# Publishing
VERSION_TAG_PREFIX = "v"
TAG_POLL_ATTEMPTS = 5
TAG_POLL_INTERVAL_SECONDS = 1.0


class ApxError(Exception):
    """Failure in a command; raised inside task operations and reported as a fatal task error."""
