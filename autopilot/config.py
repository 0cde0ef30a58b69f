from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # LLM
    llm_provider: str = "dashscope"
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_api_key: str = ""  # Generic key, used when provider-specific key is empty
    llm_model: str = "qwen-vl-max"
    llm_base_url: str = ""  # Custom base URL for openai_compatible provider
    llm_timeout_seconds: float = 60.0
    llm_max_retries: int = 2
    llm_backoff_base_seconds: float = 1.0
    llm_backoff_jitter_seconds: float = 0.3
    llm_max_tokens: int = 4096

    # Agent loop
    max_steps: int = 30
    max_consecutive_errors: int = 3
    max_finished_tasks: int = 50  # Finished runs kept in memory for status queries

    # Skills
    skills_catalog_path: str = "./skills.json"
    skill_min_score: float = 0.3
    skill_list_min_score: float = 0.2
    llm_intent_min_confidence: float = 0.5
    fast_path_min_confidence: float = 0.8

    # Device bridge
    device_bridge_url: str = "http://127.0.0.1:8765"
    device_timeout_seconds: float = 30.0
    app_scan_interval_seconds: float = 300.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
