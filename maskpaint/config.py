from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Maskpaint API"
    env: str = "local"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./maskpaint.db"
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/1"
    celery_task_always_eager: bool = False

    storage_backend: str = "local"  # local|s3
    storage_root: str = "data/blobs"
    public_base_url: str = "http://localhost:8000"
    s3_bucket: str | None = None
    aws_region: str = "us-east-1"
    max_upload_bytes: int = 10 * 1024 * 1024

    max_display_width: int = 800
    max_display_height: int = 550
    container_padding: int = 32
    default_container_width: int = 800

    brush_size_default: int = 40
    brush_size_min: int = 5
    brush_size_max: int = 50
    stroke_color: tuple[int, int, int] = (34, 197, 94)
    stroke_opacity: float = 0.5
    stroke_supersample: int = 4
    mask_min_painted_pixels: int = 64
    resolve_masks_in_background: bool = True
    mask_settle_timeout_seconds: float = 10.0
    session_idle_ttl_seconds: float = 3600.0
    max_sessions: int = 64

    fal_key: str | None = None
    fal_inpaint_url: str = "https://fal.run/fal-ai/flux-kontext-lora/inpaint"
    fal_model_label: str = "FLUX.1 Kontext LoRA"
    inpaint_num_inference_steps: int = 30
    inpaint_guidance_scale: float = 2.5
    inpaint_strength: float = 0.88
    inpaint_num_images: int = 1
    inpaint_enable_safety_checker: bool = True
    inpaint_output_format: str = "png"
    inpaint_acceleration: str = "none"
    generation_timeout_seconds: float = 300.0
    rehost_generated_images: bool = True

    openai_api_key: str | None = None
    openai_responses_url: str = "https://api.openai.com/v1/responses"
    openai_model: str = "gpt-4o"
    assist_timeout_seconds: float = 300.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
