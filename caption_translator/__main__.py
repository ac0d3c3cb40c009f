"""Package entry point for ``python -m caption_translator``.

WHY: Users run the engine tools as ``python -m caption_translator translate
"Hello"`` or ``python -m caption_translator serve``. Python's ``-m`` flag
looks for ``__main__.py`` inside the package and executes it.

HOW: Delegates to the CLI's main() function.
"""

from caption_translator.cli import main

if __name__ == "__main__":
    main()
