# morphclaude/utils/__init__.py
