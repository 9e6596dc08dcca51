"""
Configuration management for the sign-to-speech assistant.
"""
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field


DEFAULT_CONFIG_NAME = "config.default.yaml"


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    index: int = 0
    alternate_index: int = 1
    width: int = 640
    height: int = 480
    fps: int = 30


@dataclass
class MediaPipeConfig:
    """MediaPipe Hands configuration settings."""
    max_num_hands: int = 2
    model_complexity: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5


@dataclass
class ClassifierConfig:
    """KNN classifier configuration."""
    k: int = 3


@dataclass
class StabilizerConfig:
    """Gesture stabilization configuration."""
    confidence_threshold: float = 0.95
    stable_frames: int = 15
    speak_cooldown_ms: int = 2000
    delete_cooldown_ms: int = 1500
    shared_action_cooldown: bool = True


@dataclass
class TrainingConfig:
    """Teach session configuration."""
    prep_seconds: int = 2
    capture_ms: int = 3000


@dataclass
class SpeechConfig:
    """Text-to-speech configuration."""
    backend: str = "pyttsx3"  # "pyttsx3", "elevenlabs" or "console"
    volume: float = 1.0
    rate: int = 175
    fallback_text: str = "Make a sentence first."
    voice_id: str = "JBFqnCBsd6RMkjVDRZzb"
    model_id: str = "eleven_turbo_v2_5"


@dataclass
class StorageConfig:
    """Persistence configuration."""
    path: str = "signspeak_store.json"
    key: str = "sign-speak-brain"


@dataclass
class AppConfig:
    """Main loop configuration."""
    frame_interval_ms: int = 30
    retry_delay_ms: int = 2000


@dataclass
class DisplayConfig:
    """Display configuration settings."""
    show_landmarks: bool = True
    mirror_user_camera: bool = True
    window_name: str = "Sign Speak"


@dataclass
class Cfg:
    """Main configuration class."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    mediapipe: MediaPipeConfig = field(default_factory=MediaPipeConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    stabilizer: StabilizerConfig = field(default_factory=StabilizerConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    app: AppConfig = field(default_factory=AppConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)


def load_config(path: Optional[str] = None) -> Cfg:
    """
    Load configuration from YAML file.

    Args:
        path: Path to config file. If None, uses config.default.yaml from the
            project root, or built-in defaults when that file is not present.

    Returns:
        Configuration object with all settings
    """
    if path is None:
        project_root = Path(__file__).parent.parent
        default_path = project_root / DEFAULT_CONFIG_NAME
        if not default_path.exists():
            return Cfg()
        path = default_path

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return _dict_to_config(data)


def _dict_to_config(data: Dict[str, Any]) -> Cfg:
    """Convert dictionary to configuration object; missing keys keep their defaults."""
    return Cfg(
        camera=CameraConfig(**data.get('camera', {})),
        mediapipe=MediaPipeConfig(**data.get('mediapipe', {})),
        classifier=ClassifierConfig(**data.get('classifier', {})),
        stabilizer=StabilizerConfig(**data.get('stabilizer', {})),
        training=TrainingConfig(**data.get('training', {})),
        speech=SpeechConfig(**data.get('speech', {})),
        storage=StorageConfig(**data.get('storage', {})),
        app=AppConfig(**data.get('app', {})),
        display=DisplayConfig(**data.get('display', {})),
    )
