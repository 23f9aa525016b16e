from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    host: str = "127.0.0.1"
    port: int = 8002

    # Catalog service
    catalog_api_url: str = ""
    catalog_api_token: str = ""
    catalog_timeout: float = 30.0
    catalog_page_size: int = 500
    catalog_load_on_startup: bool = True

    @property
    def catalog_enabled(self) -> bool:
        return bool(self.catalog_api_url)

    # Matcher
    matcher_overrides_path: str = ""  # JSON file with supplemental keyword tables
    match_threshold: float = 0.6
    spu_match_threshold: float = 0.5
    sku_match_threshold: float = 0.6
    extraction_cache_size: int = 4096

    # Log
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
