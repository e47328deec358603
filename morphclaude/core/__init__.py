# morphclaude/core/__init__.py
