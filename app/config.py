from dotenv import load_dotenv
import os

# Load environment variables from a .env file
load_dotenv()

# Document store (JSONBin)
JSONBIN_API_KEY = os.getenv("JSONBIN_API_KEY")
JSONBIN_BIN_ID = os.getenv("JSONBIN_BIN_ID")
JSONBIN_BASE_URL = os.getenv("JSONBIN_BASE_URL", "https://api.jsonbin.io/v3")

# Submission source (Jotform)
JOTFORM_API_KEY = os.getenv("JOTFORM_API_KEY")
JOTFORM_FORM_ID = os.getenv("JOTFORM_FORM_ID", "260555247643056")
JOTFORM_BASE_URL = os.getenv("JOTFORM_BASE_URL", "https://api.jotform.com")
JOTFORM_PAGE_SIZE = int(os.getenv("JOTFORM_PAGE_SIZE", 1000))

# Which form answers hold the display name and the uploaded picture
FORM_NAME_FIELD = os.getenv("FORM_NAME_FIELD", "nomePagina").strip()
FORM_FILE_FIELD = os.getenv("FORM_FILE_FIELD", "caricaFile").strip()

if not FORM_NAME_FIELD or not FORM_FILE_FIELD:
    raise ValueError("FORM_NAME_FIELD and FORM_FILE_FIELD must not be empty")

# Image host
IMAGE_HOST = os.getenv("IMAGE_HOST", "imgbb").lower()
IMGBB_API_KEY = os.getenv("IMGBB_API_KEY")
IMGBB_UPLOAD_URL = os.getenv("IMGBB_UPLOAD_URL", "https://api.imgbb.com/1/upload")

# AWS Configuration (only used when IMAGE_HOST=s3)
S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME")
AWS_ACCESS_KEY = os.getenv("AWS_ACCESS_KEY")
AWS_SECRET_KEY = os.getenv("AWS_SECRET_KEY")
S3_REGION = os.getenv("S3_REGION")
S3_URL = f"https://{S3_BUCKET_NAME}.s3.{S3_REGION}.amazonaws.com"

# Image re-encoding before upload
IMAGE_OPTIMIZE = os.getenv("IMAGE_OPTIMIZE", "true").lower() in ("1", "true", "yes")
IMAGE_MAX_WIDTH = int(os.getenv("IMAGE_MAX_WIDTH", 1080))
IMAGE_QUALITY = int(os.getenv("IMAGE_QUALITY", 85))

# Reconciliation batch size, sized to fit the platform execution-time limit
SYNC_BATCH_SIZE = int(os.getenv("SYNC_BATCH_SIZE", 5))

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 20))

# Image proxy
PROXY_ALLOWED_PREFIXES = [
    prefix.strip()
    for prefix in os.getenv(
        "PROXY_ALLOWED_PREFIXES",
        "https://eu.jotform.com/,https://www.jotform.com/"
    ).split(",")
    if prefix.strip()
]
PROXY_MAX_BYTES = int(os.getenv("PROXY_MAX_BYTES", 6_000_000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
