"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_STREAM_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class ChatStreamSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 远端对话端点 ----
    chat_api_url: Optional[str] = Field(
        default=None,
        description="流式对话端点完整 URL，例如 https://xxx.supabase.co/functions/v1/equipment-chat",
    )
    chat_api_key: Optional[str] = Field(default=None, description="Bearer 认证密钥")

    # ---- 超时 ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="连接/写入超时时间（秒）")
    chunk_read_timeout: float = Field(
        default=60.0,
        gt=0,
        description="单次读取分块的超时时间（秒），超时视为流提前结束",
    )

    # ---- 解码器 ----
    stall_warning_threshold: int = Field(
        default=3,
        ge=0,
        description="同一行连续重试失败多少次后记录一次停滞告警，0 表示首次失败即告警",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("chat_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = ChatStreamSettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = ChatStreamSettings
