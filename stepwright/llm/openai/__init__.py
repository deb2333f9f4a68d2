from stepwright.llm.openai.chat import ChatOpenAI

__all__ = ['ChatOpenAI']
