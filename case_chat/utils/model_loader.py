import os
import sys

from dotenv import load_dotenv
from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings
from langchain_groq import ChatGroq

from case_chat.exception.custom_exception import ConfigurationError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.utils.config_loader import AppConfig

# API key environment variable per provider
PROVIDER_KEYS = {
    "groq": "GROQ_API_KEY",
    "google": "GOOGLE_API_KEY",
}


class ApiKeyManager:
    """Loads the API keys for the providers the configuration actually uses."""

    def __init__(self, providers: set[str]):
        load_dotenv()
        self.keys = {}

        required = sorted(PROVIDER_KEYS[p] for p in providers)
        for k in required:
            if val := os.getenv(k):
                self.keys[k] = val
                log.info("Loaded %s from env", k)
            else:
                log.error("Missing required API key: %s", k)

        if len(self.keys) != len(required):
            raise ConfigurationError("Missing API Keys", sys)

    def get(self, key: str) -> str:
        return self.keys[key]


class ModelLoader:
    """
    Responsible for:
    - Loading embeddings (used by the FAISS index)
    - Loading role-based chat LLMs (the "rag" role answers questions)
    """

    def __init__(self, config: AppConfig):
        self.config = config
        providers = {config.embedding_model.provider} | {r.provider for r in config.llm.values()}
        self.api_key_mgr = ApiKeyManager(providers)

    def load_embeddings(self):
        model_name = self.config.embedding_model.model_name
        log.info("Loading embedding model | model=%s", model_name)
        return GoogleGenerativeAIEmbeddings(
            model=model_name, google_api_key=self.api_key_mgr.get("GOOGLE_API_KEY")
        )

    def load_llm(self, role: str):
        if role not in self.config.llm:
            log.error("LLM role not found in config | role=%s", role)
            raise ConfigurationError(f"LLM role '{role}' not found in config")

        llm_config = self.config.llm[role]
        log.info("Loading LLM | role=%s | model=%s", role, llm_config.model_name)

        if llm_config.provider == "google":
            return ChatGoogleGenerativeAI(
                model=llm_config.model_name,
                google_api_key=self.api_key_mgr.get("GOOGLE_API_KEY"),
                temperature=llm_config.temperature,
                max_output_tokens=llm_config.max_tokens,
            )

        if llm_config.provider == "groq":
            return ChatGroq(
                model=llm_config.model_name,
                api_key=self.api_key_mgr.get("GROQ_API_KEY"),
                temperature=llm_config.temperature,
                max_tokens=llm_config.max_tokens,
            )

        raise ConfigurationError(f"Unsupported provider {llm_config.provider}")
