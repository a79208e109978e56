from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    live_ws_url: str = "wss://yus.kwscloud.in/yus/passenger-ws"
    catalog_base_url: str = "https://yus.kwscloud.in/yus"
    catalog_timeout_seconds: float = 30.0
    reconnect_delay_seconds: float = 3.0
    ws_heartbeat_seconds: float = 20.0
    reach_threshold_meters: float = 50.0
    endpoint_snap_meters: float = 50.0
    release_driver_id: str = "exit"

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
