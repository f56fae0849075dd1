from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from app.core.logging import configure_logging
from llm.langchain_adapter import build_messages


def test_messages_include_system_history_and_prompt():
    messages = build_messages(
        "update the title",
        system_prompt="You plan tasks.",
        history=[
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "tool", "content": "ignored"},
        ],
    )

    assert [type(message) for message in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
    assert messages[-1].content == "update the title"


def test_images_are_attached_to_the_last_user_message():
    messages = build_messages("what is this?", image_urls=["https://cdn.example.com/a.png"])

    assert len(messages) == 1
    assert messages[0].content == [
        {"type": "text", "text": "what is this?"},
        {"type": "image_url", "image_url": {"url": "https://cdn.example.com/a.png"}},
    ]


def test_configure_logging_quiets_noisy_loggers():
    import logging

    configure_logging("DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
