from office_core.domains.assistant.services import AssistantClient

__all__ = ["AssistantClient"]
