from supabase import create_client, Client, ClientOptions
from functools import lru_cache
from wa_dashboard.config import get_settings
from wa_dashboard.utils.exceptions import ConfigurationError


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get Supabase client with the service role key (cached).

    Raises:
        ConfigurationError: if the Supabase URL or service role key is missing

    Returns:
        Client: Supabase client instance
    """
    settings = get_settings()
    if not settings.supabase_url:
        raise ConfigurationError("SUPABASE_URL")
    if not settings.supabase_service_role_key:
        raise ConfigurationError("SUPABASE_SERVICE_ROLE_KEY")

    supabase: Client = create_client(
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_service_role_key,
        options=ClientOptions(postgrest_client_timeout=settings.supabase_timeout)
    )
    return supabase
