# morphclaude/__init__.py
"""
morphclaude - 拦截助手的文件编辑工具调用，通过 Morph fast-apply 合并服务完成写入。
"""

from .core.interceptor import EditInterceptor
from .core.models import Blocked, Declined, EditRequest, EditResult, FilePayload, Handled

__version__ = "0.1.0"

__all__ = [
    'EditInterceptor', 'EditRequest', 'EditResult', 'FilePayload',
    'Handled', 'Declined', 'Blocked', '__version__',
]
