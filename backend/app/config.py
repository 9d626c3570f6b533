from dataclasses import dataclass, field
from dynaconf import Dynaconf
from backend.app.constants import DEFAULTS

from scholargy.config.settings import (
    RetrievalConfig,
    FanOutConfig,
    ContextConfig,
    GenerationConfig,
    ScholargyConfig,
)

settings = Dynaconf(
    envvar_prefix="SCHOLARGY",
    load_dotenv=True,
    settings_files=[],
)


def _setting(name: str, default=None):
    return settings.get(name, DEFAULTS.get(name, default))


def _scholargy_config() -> ScholargyConfig:
    return ScholargyConfig(
        retrieval=RetrievalConfig(
            article_top_k=int(_setting("ARTICLE_TOP_K")),
            record_top_k=int(_setting("RECORD_TOP_K")),
            keyword_top_k=int(_setting("KEYWORD_TOP_K")),
            vector_field=_setting("VECTOR_FIELD"),
            records_collection=_setting("RECORDS_COLLECTION"),
            vector_index=_setting("RECORDS_VECTOR_INDEX"),
        ),
        fanout=FanOutConfig(
            policy=_setting("FANOUT_POLICY"),
            timeout_seconds=float(_setting("FANOUT_TIMEOUT_SECONDS")),
        ),
        context=ContextConfig(
            max_context_chars=int(_setting("MAX_CONTEXT_CHARS")),
            overflow=_setting("CONTEXT_OVERFLOW"),
        ),
        generation=GenerationConfig(
            max_tokens=int(_setting("LLM_MAX_TOKENS")),
            temperature=float(_setting("LLM_TEMPERATURE")),
        ),
    )


@dataclass(frozen=True)
class AppConfig:
    # ---------------- App ----------------
    app_name: str = _setting("APP_NAME")
    api_prefix: str = _setting("API_PREFIX")
    log_level: str = _setting("LOG_LEVEL")

    # ---------------- Azure AI Search (articles) ----------------
    azure_search_endpoint: str | None = _setting("AZURE_SEARCH_ENDPOINT")
    azure_search_api_key: str | None = _setting("AZURE_SEARCH_API_KEY")
    azure_search_index_name: str | None = _setting("AZURE_SEARCH_INDEX_NAME")

    # ---------------- Azure OpenAI ----------------
    azure_openai_endpoint: str | None = _setting("AZURE_OPENAI_ENDPOINT")
    azure_openai_api_key: str | None = _setting("AZURE_OPENAI_API_KEY")
    azure_openai_api_version: str = _setting("AZURE_OPENAI_API_VERSION")
    chat_deployment: str | None = _setting("AZURE_OPENAI_DEPLOYMENT_NAME")
    embedding_deployment: str | None = _setting("AZURE_OPENAI_EMBEDDING_DEPLOYMENT_NAME")

    # ---------------- Embeddings ----------------
    embedding_provider: str = _setting("EMBEDDING_PROVIDER")
    embedding_dimension: int = int(_setting("EMBEDDING_DIMENSION"))
    embedding_cache_size: int = int(_setting("EMBEDDING_CACHE_SIZE"))
    hf_embedding_model: str = _setting("HF_EMBEDDING_MODEL")
    hf_embedding_device: str = _setting("HF_EMBEDDING_DEVICE")

    # ---------------- Records store ----------------
    mongodb_uri: str | None = _setting("MONGODB_URI")
    mongodb_database: str = _setting("MONGODB_DATABASE")

    # ---------------- Pipeline policy ----------------
    scholargy: ScholargyConfig = field(default_factory=_scholargy_config)

    @property
    def search_configured(self) -> bool:
        return bool(
            self.azure_search_endpoint
            and self.azure_search_api_key
            and self.azure_search_index_name
        )

    @property
    def openai_configured(self) -> bool:
        return bool(self.azure_openai_endpoint and self.azure_openai_api_key)

    @property
    def records_configured(self) -> bool:
        return bool(self.mongodb_uri)
