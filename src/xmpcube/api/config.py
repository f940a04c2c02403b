"""
Centralized configuration for the xmp-cube API.
Every tunable lives here; each can be overridden with an XMPCUBE_* variable.
"""

import os

# Service
API_TITLE = "xmp-cube API"
API_VERSION = "1.0.0"

# Paths
LOG_DIR = os.path.expanduser(os.environ.get("XMPCUBE_LOG_DIR", "~/.xmpcube/logs"))
TEMP_PREFIX = "image-analysis-"

# Upload limits
MAX_IMAGE_SIZE = int(os.environ.get("XMPCUBE_MAX_IMAGE_SIZE", 50 * 1024 * 1024))  # 50MB
MAX_XMP_SIZE = int(os.environ.get("XMPCUBE_MAX_XMP_SIZE", 1 * 1024 * 1024))  # 1MB

ALLOWED_IMAGE_TYPES = (
    "image/jpeg",
    "image/png",
    "image/tiff",
    "image/webp",
    "image/heic",
    "image/heif",
)
ALLOWED_XMP_TYPES = ("application/xml", "text/xml")
XMP_EXTENSION = ".xmp"
REQUIRED_XMP_ELEMENTS = ("ProcessVersion", "Version", "WhiteBalance")

# Analysis
MAX_ANALYSIS_PIXELS = int(os.environ.get("XMPCUBE_MAX_ANALYSIS_PIXELS", 4_000_000))
ANALYSIS_WORKERS = int(os.environ.get("XMPCUBE_WORKERS", 8))

# Output
JPEG_QUALITY = int(os.environ.get("XMPCUBE_JPEG_QUALITY", 95))

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("XMPCUBE_CORS_ORIGINS", "http://localhost:3000,*").split(",")
    if origin.strip()
]

# Ensure directories exist
os.makedirs(LOG_DIR, exist_ok=True)
