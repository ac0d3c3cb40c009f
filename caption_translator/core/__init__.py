"""Core data model, text normalisation, and line-settling logic.

WHY: The core package holds the pieces every other stage depends on:
the shared dataclasses, the text normaliser, the fragment buffer and
the continuation merger. None of them know about hosts, providers or
presentation.

HOW: models.py defines the data structures, text.py the lookup keys,
fragments.py and merger.py turn raw caption text into DisplayedLines,
timers.py provides the debounce primitive they share.

RULES:
- Dataclasses in models.py are the contract; change with care
- No network, host, or presentation code in this package
"""
