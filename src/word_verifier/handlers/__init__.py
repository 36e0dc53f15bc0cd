"""Handlers package."""

from word_verifier.handlers.api import ApiRouter
from word_verifier.handlers.verification import process_message, run_worker_loop

__all__ = ["ApiRouter", "process_message", "run_worker_loop"]
