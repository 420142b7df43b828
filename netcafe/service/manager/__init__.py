from .session_manager import SessionManager
