"""
Configuration management for the gesture-to-word recognizer.
"""
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field

from .sentences import DEFAULT_TARGET_SENTENCES


@dataclass
class ClassifierConfig:
    """Nearest-neighbor settings."""
    k: int = 5
    confidence_threshold: float = 0.8


@dataclass
class CaptureConfig:
    """Training burst settings."""
    burst_size: int = 50
    interval_ms: int = 100


@dataclass
class SentencesConfig:
    """Sentence matching settings."""
    history_size: int = 5
    targets: List[str] = field(default_factory=lambda: list(DEFAULT_TARGET_SENTENCES))


@dataclass
class EmbeddingConfig:
    """Embedding provider settings."""
    provider: str = "landmarks"
    url: Optional[str] = None
    timeout_s: float = 10.0
    retries: int = 1
    max_num_hands: int = 2
    min_detection_confidence: float = 0.5


@dataclass
class StorageConfig:
    """Dataset persistence settings."""
    backend: str = "file"
    path: str = "models"
    key: str = "sign-language-model"


@dataclass
class ServerConfig:
    """HTTP server settings."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Cfg:
    """Main configuration class."""
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    sentences: SentencesConfig = field(default_factory=SentencesConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> Cfg:
    """
    Load configuration from YAML file.
    
    Args:
        path: Path to config file. If None, uses the packaged config.default.yaml
        
    Returns:
        Configuration object with all settings
    """
    if path is None:
        path = Path(__file__).parent / "config.default.yaml"
    
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f)
    
    return _dict_to_config(data or {})


def _dict_to_config(data: Dict[str, Any]) -> Cfg:
    """Convert dictionary to configuration object. Missing keys keep their defaults."""
    classifier_data = data.get('classifier') or {}
    classifier = ClassifierConfig(
        k=int(classifier_data.get('k', 5)),
        confidence_threshold=float(classifier_data.get('confidence_threshold', 0.8))
    )
    
    capture_data = data.get('capture') or {}
    capture = CaptureConfig(
        burst_size=int(capture_data.get('burst_size', 50)),
        interval_ms=int(capture_data.get('interval_ms', 100))
    )
    
    sentences_data = data.get('sentences') or {}
    sentences = SentencesConfig(
        history_size=int(sentences_data.get('history_size', 5)),
        targets=list(sentences_data.get('targets', DEFAULT_TARGET_SENTENCES))
    )
    
    embedding_data = data.get('embedding') or {}
    embedding = EmbeddingConfig(
        provider=embedding_data.get('provider', 'landmarks'),
        url=embedding_data.get('url'),
        timeout_s=float(embedding_data.get('timeout_s', 10.0)),
        retries=int(embedding_data.get('retries', 1)),
        max_num_hands=int(embedding_data.get('max_num_hands', 2)),
        min_detection_confidence=float(embedding_data.get('min_detection_confidence', 0.5))
    )
    
    storage_data = data.get('storage') or {}
    storage = StorageConfig(
        backend=storage_data.get('backend', 'file'),
        path=str(storage_data.get('path', 'models')),
        key=storage_data.get('key', 'sign-language-model')
    )
    
    server_data = data.get('server') or {}
    server = ServerConfig(
        host=server_data.get('host', '0.0.0.0'),
        port=int(server_data.get('port', 8000))
    )
    
    logging_data = data.get('logging') or {}
    logging_cfg = LoggingConfig(level=str(logging_data.get('level', 'INFO')).upper())
    
    return Cfg(
        classifier=classifier,
        capture=capture,
        sentences=sentences,
        embedding=embedding,
        storage=storage,
        server=server,
        logging=logging_cfg
    )
