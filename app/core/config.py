import os
from typing import Dict, List, Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="MERCHANT_ORCHESTRATOR_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "merchant-task-orchestrator"
    environment: str = "local"
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # LLM (Azure OpenAI)
    azure_openai_api_key: str = "placeholder-key"
    azure_openai_endpoint: str = "https://placeholder.openai.azure.com"
    azure_openai_api_version: str = "2024-02-15-preview"
    azure_openai_deployment_name: str = "gpt-4o"

    # Execution
    max_parallel_agents: int = Field(default=5, ge=1)
    default_step_timeout_seconds: float = 30.0
    agent_timeouts_seconds: Dict[str, float] = Field(default_factory=lambda: {
        "manager": 120.0,       # planning with image analysis
        "product": 15.0,
        "photographer": 120.0,  # image generation
        "marketer": 20.0,
        "analyst": 30.0,
        "video": 15.0,
        "ui_controller": 5.0,
        "bulk_deals": 300.0,
    })

    # Confirmation gate
    image_count_threshold: int = 10
    cost_per_image_usd: float = 0.01

    # Observability
    tracing_enabled: bool = True
    trace_format: Literal["console", "json"] = "console"

    # Paths
    base_dir: str = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    prompts_dir: str = os.path.join(base_dir, "prompts")

    def timeout_for(self, agent: str) -> float:
        """Per-step timeout for an agent type, in seconds."""
        return self.agent_timeouts_seconds.get(agent, self.default_step_timeout_seconds)

settings = Settings()
