"""Web interface using Streamlit."""

import asyncio

import streamlit as st

from f1gpt.client import ChatSession
from f1gpt.config import config
from f1gpt.errors import ValidationError
from f1gpt.schemas import Message

WELCOME_TEXT = (
    "🏁 Welcome to F1GPT! Your ultimate Formula 1 guide. "
    "Ask me anything about drivers, races, or the latest news!"
)

PROMPT_SUGGESTIONS = [
    "Who won the 2024 Formula One World Championship?",
    "Who is the highest paid F1 driver?",
    "Who will be the newest driver for Ferrari?",
    "Who is the current Formula One World Driver's Champion?",
]

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        if "chat_session" not in st.session_state:
            st.session_state.chat_session = ChatSession()
        if "pending_prompt" not in st.session_state:
            st.session_state.pending_prompt = None

    @staticmethod
    def session() -> ChatSession:
        return st.session_state.chat_session

    @staticmethod
    def reset() -> None:
        """Drop the current conversation."""
        st.session_state.chat_session = ChatSession()
        st.session_state.pending_prompt = None


def render_message(message: Message) -> None:
    with st.chat_message(message.role):
        st.markdown(message.content)


def render_history(session: ChatSession) -> None:
    """Render every message of the session log."""
    for message in session.messages:
        render_message(message)


def render_welcome() -> None:
    """Render the greeting and the prompt suggestion buttons."""
    st.markdown(WELCOME_TEXT)
    columns = st.columns(len(PROMPT_SUGGESTIONS))
    for column, suggestion in zip(columns, PROMPT_SUGGESTIONS, strict=True):
        with column:
            if st.button(suggestion, use_container_width=True):
                st.session_state.pending_prompt = suggestion


def submit(session: ChatSession, text: str) -> None:
    """Send ``text`` and stream the answer into a live placeholder."""
    try:
        session.validate_input(text)
    except ValidationError as e:
        st.warning(str(e))
        return

    render_message(Message(role="user", content=text.strip()))
    with st.chat_message("assistant"):
        placeholder = st.empty()

    def on_update(current: ChatSession) -> None:
        last = current.messages[-1]
        if last.role == "assistant":
            placeholder.markdown(last.content)
        elif current.is_loading:
            placeholder.markdown("_Thinking..._")

    session.on_update = on_update
    try:
        asyncio.run(session.submit(text))
    finally:
        session.on_update = None


def render_sidebar() -> None:
    """Render the sidebar with connection details."""
    with st.sidebar:
        st.header("F1GPT")
        st.write(f"**Chat API:** {config.CHAT_API_URL}")
        st.write(f"**Max message length:** {config.MAX_INPUT_LENGTH}")
        st.divider()
        if st.button("Clear Conversation", use_container_width=True):
            SessionState.reset()
            st.rerun()


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(page_title="F1GPT", page_icon="🏎️")

    SessionState.initialize()
    session = SessionState.session()

    st.title("F1GPT")
    render_sidebar()

    if session.messages:
        render_history(session)
    else:
        render_welcome()

    typed = st.chat_input(
        "Ask me something...",
        max_chars=config.MAX_INPUT_LENGTH,
        disabled=session.is_loading,
    )
    prompt = typed or st.session_state.pending_prompt
    st.session_state.pending_prompt = None

    if prompt:
        submit(session, prompt)
        st.rerun()


if __name__ == "__main__":
    main()
