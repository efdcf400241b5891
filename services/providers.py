# services/providers.py
from langchain_core.language_models import BaseChatModel
from langchain_ollama import ChatOllama

from config import Settings

REASONING_MODEL_ID = "chat-model-reasoning"


class ModelProvider:
    """
    Maps logical model ids to LangChain chat models:
    chat-model, chat-model-reasoning, title-model, artifact-model.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._names = {
            "chat-model": settings.chat_model,
            REASONING_MODEL_ID: settings.reasoning_model,
            "title-model": settings.title_model,
            "artifact-model": settings.artifact_model,
        }
        self._models: dict[str, BaseChatModel] = {}

    def model_name(self, model_id: str) -> str:
        try:
            return self._names[model_id]
        except KeyError:
            raise ValueError(f"Unknown model id: {model_id}") from None

    def language_model(self, model_id: str) -> BaseChatModel:
        if model_id not in self._models:
            kwargs = {}
            if model_id == REASONING_MODEL_ID:
                # thinking comes back in additional_kwargs["reasoning_content"]
                kwargs["reasoning"] = True
            self._models[model_id] = ChatOllama(
                model=self.model_name(model_id),
                base_url=self.settings.ollama_base_url,
                **kwargs,
            )
        return self._models[model_id]
