"""Prompt contract shared by every provider."""

import json

SYSTEM_INSTRUCTION = """You are a linguist checking words taken from a Bible translation.
For every word in the list, decide whether it is a valid word of the given language.
Answer with a JSON array and nothing else, one object per word:
[{"word": "<the word exactly as given>", "status": <status>}]
Status values:
0 - the word does not exist in the language (misspelling or typo)
1 - the word exists in the language
2 - the word is a proper name
Do not add, remove or change words. Do not add any other commentary."""


def build_user_message(language: str, words: list[str]) -> str:
    """
    Build the user message for one verification request.

    Args:
        language: Human-readable language name or IETF tag.
        words: Words to verify.

    Returns:
        Message text containing the language and the full word list.
    """
    return f"Language: {language}\nWords: {json.dumps(words, ensure_ascii=False)}"
