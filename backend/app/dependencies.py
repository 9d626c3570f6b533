from functools import lru_cache
import logging
import time

from azure.core.credentials import AzureKeyCredential
from azure.search.documents.aio import SearchClient
from openai import AsyncAzureOpenAI
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection

from scholargy.embeddings.encoder import EmbeddingEncoder, UnconfiguredEmbeddingEncoder
from scholargy.embeddings.openai_encoder import AzureOpenAIEmbeddingEncoder
from scholargy.rag.context_builder import ContextAssembler
from scholargy.rag.fanout import FanOutCoordinator
from scholargy.rag.openai_backend import AzureOpenAIChatBackend
from scholargy.rag.prompt import GroundedPromptBuilder
from scholargy.sources.articles import ArticleSearchSource
from scholargy.sources.records import RecordKeywordSource, RecordVectorSource

from backend.app.config import AppConfig
from backend.app.services.answer_service import AnswerService


logger = logging.getLogger("scholargy.startup")


@lru_cache
def get_config() -> AppConfig:
    return AppConfig()


# ---------------------------------------------------------------------
# External clients (shared, read-only after construction)
# ---------------------------------------------------------------------


@lru_cache
def get_openai_client() -> AsyncAzureOpenAI | None:
    config = get_config()
    if not config.openai_configured:
        logger.warning("Azure OpenAI is not configured; generation disabled.")
        return None
    return AsyncAzureOpenAI(
        azure_endpoint=config.azure_openai_endpoint,
        api_key=config.azure_openai_api_key,
        api_version=config.azure_openai_api_version,
    )


@lru_cache
def get_search_client() -> SearchClient | None:
    config = get_config()
    if not config.search_configured:
        logger.warning("Azure AI Search is not configured; article search disabled.")
        return None
    logger.info("Azure AI Search initialized (index=%s).", config.azure_search_index_name)
    return SearchClient(
        endpoint=config.azure_search_endpoint,
        index_name=config.azure_search_index_name,
        credential=AzureKeyCredential(config.azure_search_api_key),
    )


@lru_cache
def get_mongo_client() -> AsyncMongoClient | None:
    config = get_config()
    if not config.records_configured:
        logger.warning("MongoDB is not configured; record search disabled.")
        return None
    return AsyncMongoClient(config.mongodb_uri)


def get_records_collection() -> AsyncCollection | None:
    client = get_mongo_client()
    if client is None:
        return None
    config = get_config()
    return client[config.mongodb_database][config.scholargy.retrieval.records_collection]


# ---------------------------------------------------------------------
# Pipeline components
# ---------------------------------------------------------------------


@lru_cache
def get_embedding_encoder() -> EmbeddingEncoder:
    config = get_config()
    dimension = config.embedding_dimension or None

    if config.embedding_provider == "huggingface":
        from scholargy.embeddings.hf_encoder import HuggingFaceEmbeddingEncoder

        t0 = time.perf_counter()
        encoder = HuggingFaceEmbeddingEncoder(
            model_name=config.hf_embedding_model,
            device=config.hf_embedding_device,
            cache_size=config.embedding_cache_size,
        )
        logger.info(
            "[startup] embedding encoder init in %.3fs",
            time.perf_counter() - t0,
        )
        return encoder

    client = get_openai_client()
    if client is None or not config.embedding_deployment:
        return UnconfiguredEmbeddingEncoder("Azure OpenAI embedding deployment is not configured")
    return AzureOpenAIEmbeddingEncoder(
        client=client,
        deployment=config.embedding_deployment,
        dimension=dimension,
        cache_size=config.embedding_cache_size,
    )


@lru_cache
def get_completion_backend() -> AzureOpenAIChatBackend:
    config = get_config()
    return AzureOpenAIChatBackend(
        client=get_openai_client(),
        deployment=config.chat_deployment,
        config=config.scholargy.generation,
    )


@lru_cache
def get_coordinator() -> FanOutCoordinator:
    config = get_config()
    retrieval = config.scholargy.retrieval
    collection = get_records_collection()

    return FanOutCoordinator(
        encoder=get_embedding_encoder(),
        articles=ArticleSearchSource(
            get_search_client(),
            vector_field=retrieval.vector_field,
        ),
        records_by_vector=RecordVectorSource(
            collection,
            index_name=retrieval.vector_index,
            vector_field=retrieval.vector_field,
        ),
        records_by_keyword=RecordKeywordSource(
            collection,
            vector_field=retrieval.vector_field,
        ),
        retrieval_config=retrieval,
        fanout_config=config.scholargy.fanout,
    )


@lru_cache
def get_answer_service() -> AnswerService:
    config = get_config()

    return AnswerService(
        coordinator=get_coordinator(),
        assembler=ContextAssembler(config.scholargy.context),
        prompt_builder=GroundedPromptBuilder(),
        backend=get_completion_backend(),
    )


async def close_clients() -> None:
    """
    Release network clients created by the factories above.
    """
    if get_search_client.cache_info().currsize:
        client = get_search_client()
        if client is not None:
            await client.close()
    if get_mongo_client.cache_info().currsize:
        client = get_mongo_client()
        if client is not None:
            await client.close()
    if get_openai_client.cache_info().currsize:
        client = get_openai_client()
        if client is not None:
            await client.close()
