from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"
    log_file: Path | None = None

    script_file: Path | None = None
    dicom_script_file: Path | None = None
    zip_script_file: Path | None = None
    lookup_table_file: Path | None = None

    enabled_types: list[str] = ["xml", "zip", "dicom"]
    output_dir: Path | None = None
    quarantine_dir: Path = Path("quarantine")

    def script_for(self, kind: str) -> Path | None:
        """Script file configured for an object type, or None."""
        if kind == "dicom":
            return self.dicom_script_file
        if kind == "zip":
            return self.zip_script_file or self.script_file
        return self.script_file
