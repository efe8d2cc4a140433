"""
Studio Search 설정

환경 변수 우선, .env 파일이 있으면 함께 로드합니다.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Elasticsearch
ES_HOST = os.getenv("ES_HOST", "localhost")
ES_PORT = int(os.getenv("ES_PORT", "9200"))
ES_SCHEME = os.getenv("ES_SCHEME", "http")
ES_TIMEOUT = int(os.getenv("ES_TIMEOUT", "30"))

# Index
STUDIO_INDEX_ALIAS = os.getenv("STUDIO_INDEX_ALIAS", "studios")
STUDIO_MAPPING = "studios"  # config/elasticsearch/mappings/studios.json
INDEX_SLICE_SIZE = int(os.getenv("INDEX_SLICE_SIZE", "5000"))

# Query
PAGE_SIZE = 24
DEFAULT_SHUFFLE_SEED = "default"

# Index settings / mappings
CONFIG_DIR = Path(__file__).parent.parent / "config" / "elasticsearch"
SETTINGS_PATH = CONFIG_DIR / "settings.json"
MAPPINGS_DIR = CONFIG_DIR / "mappings"


def es_hosts():
    return [f"{ES_SCHEME}://{ES_HOST}:{ES_PORT}"]

