from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Groq (fast search + synthesis)
    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    search_model: str = "groq/compound"
    search_fast_model: str = "groq/compound-mini"
    synthesis_model: str = "llama-3.3-70b-versatile"
    llm_max_retries: int = 0

    # You.com agent (deep research)
    youcom_api_key: str = ""
    youcom_agent_url: str = "https://api.you.com/v1/agents/runs"
    youcom_agent_id: str = "2c03ea4c-fcfd-483f-a1f3-52cde52b909c"  # research_briefing

    # Supabase auth (identity resolution only)
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Request limits
    rate_limit: int = 15
    rate_window_ms: int = 60_000
    max_query_length: int = 500
    max_sources: int = 10

    # Deadlines
    fast_search_timeout_seconds: float = 45.0
    agent_search_timeout_seconds: float = 120.0
    synthesis_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 180.0

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = ""  # empty disables the file handler

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
