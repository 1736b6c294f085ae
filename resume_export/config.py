"""Configuration for the resume export service."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service configuration."""

    # Service
    service_name: str = "resume-export"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: list[str] = ["*"]

    # Export defaults (Letter is the single canonical paper format)
    default_paper_format: str = "Letter"
    default_filename: str = "resume.pdf"
    output_dir: Path = Path("output")

    # Print engine: "chromium" or "weasyprint"
    print_engine: str = "chromium"

    # Browser
    browser_headless: bool = True
    browser_executable_path: str | None = None
    disable_sandbox: bool = True

    # Timeouts (milliseconds)
    navigation_timeout_ms: int = 60000
    content_timeout_ms: int = 30000

    # Style settling
    settle_delay_ms: int = 500
    ready_selector: str | None = None

    # Limits
    min_pdf_bytes: int = 1000
    max_concurrent_exports: int = 0
    disconnect_poll_interval: float = 0.5

    # Client rasterization
    html2canvas_url: str = (
        "https://cdn.jsdelivr.net/npm/html2canvas@1.4.1/dist/html2canvas.min.js"
    )
    printable_element_id: str = "printable-resume"
    stylesheet_urls: list[str] = [
        "https://cdn.jsdelivr.net/npm/tailwindcss@2.2.19/dist/tailwind.min.css"
    ]

    class Config:
        env_prefix = "RESUME_EXPORT_"
        env_file = ".env"
        case_sensitive = False


settings = Settings()
