"""
MarketMetric Configuration
Supports AWS Parameter Store for production secrets
"""
import os

try:
    import boto3
except ImportError:
    boto3 = None


def get_parameter(name: str, default: str = "") -> str:
    """Get parameter from AWS Parameter Store or environment"""
    # Environment variable takes precedence
    env_key = name.upper().replace("-", "_").replace("/", "_")
    if env_key in os.environ:
        return os.environ[env_key]

    if boto3 and os.environ.get("USE_PARAMETER_STORE"):
        try:
            ssm = boto3.client("ssm", region_name=os.environ.get("AWS_REGION", "us-west-2"))
            path = os.environ.get("PARAMETER_STORE_PATH", "/marketmetric/prod/")
            response = ssm.get_parameter(Name=f"{path}{name}", WithDecryption=True)
            return response["Parameter"]["Value"]
        except Exception:
            pass

    return default


def env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration"""
    # Database (analysis results for requests that carry a userId)
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///marketmetric.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Fix Render's postgres:// URL
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql://", 1)

    PERSIST_RESULTS = env_flag("PERSIST_RESULTS", "1")

    # Uploads
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB, same as the bucket limit

    # LLM (any OpenAI-compatible chat completions endpoint, Groq by default)
    LLM_API_KEY = os.environ.get("LLM_API_KEY") or os.environ.get("GROQ_API_KEY", "")
    LLM_BASE_URL = os.environ.get("LLM_BASE_URL", "https://api.groq.com/openai/v1")
    LLM_MODEL = (
        os.environ.get("LLM_MODEL")
        or os.environ.get("GROQ_API_MODEL")
        or "deepseek-r1-distill-llama-70b"
    )
    MAX_TOKENS = int(os.environ.get("MAX_TOKENS", "0") or 0)  # 0 means per-mode default

    # Analysis
    ANALYSIS_MODE = os.environ.get("ANALYSIS_MODE", "scorecard")
    PARSE_POLICY = os.environ.get("PARSE_POLICY", "lenient")
    PDF_PARSE_TIMEOUT = float(os.environ.get("PDF_PARSE_TIMEOUT", "30"))
    USE_MOCK_DATA = env_flag("USE_MOCK_DATA")

    # Storage: S3 when a bucket is configured, local directory otherwise
    AWS_REGION = os.environ.get("AWS_REGION", "us-west-2")
    AWS_S3_BUCKET = os.environ.get("AWS_S3_BUCKET", "")
    STORAGE_DIR = os.environ.get("STORAGE_DIR", "/tmp/marketmetric_storage")

    # App Version
    APP_VERSION = os.environ.get("APP_VERSION", "2026.10")
    BUILD_TIME = os.environ.get("BUILD_TIME", "")
    GIT_COMMIT = os.environ.get("GIT_COMMIT", "")


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Override with Parameter Store in production
    LLM_API_KEY = get_parameter("llm-api-key", Config.LLM_API_KEY)
    AWS_S3_BUCKET = get_parameter("aws-s3-bucket", Config.AWS_S3_BUCKET)


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LLM_API_KEY = "test-key"
    AWS_S3_BUCKET = ""
    USE_MOCK_DATA = False
    PARSE_POLICY = "lenient"
    ANALYSIS_MODE = "scorecard"
    PERSIST_RESULTS = True


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}

