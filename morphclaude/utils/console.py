"""
统一的控制台输出工具，基于 rich 实现。

Hook 调用方只读取 stdout 的约定输出，因此所有诊断信息都写到 err_console（stderr）。
"""
from rich.console import Console as RichConsole
from rich.markup import escape
from rich.theme import Theme
from typing import Any, Optional

PREFIX = escape("[morph]")

# 自定义主题
CUSTOM_THEME = Theme({
    "info": "cyan bold",
    "success": "green bold",
    "warning": "yellow bold",
    "error": "red bold",
    "heading": "bold underline",
    "path": "magenta",
    "prompt": "green",
})

# 全局控制台实例（单例）
console = RichConsole(theme=CUSTOM_THEME, soft_wrap=True)
err_console = RichConsole(theme=CUSTOM_THEME, soft_wrap=True, stderr=True)


# --- 便捷输出函数 ---

def info(message: str):
    """蓝色信息提示"""
    err_console.print(f"{PREFIX} [info]INFO[/info]: {escape(message)}", markup=True, highlight=False)


def success(message: str):
    """绿色成功提示"""
    err_console.print(f"{PREFIX} [success]OK[/success]: {escape(message)}", markup=True, highlight=False)


def warning(message: str):
    """黄色警告提示"""
    err_console.print(f"{PREFIX} [warning]WARNING[/warning]: {escape(message)}", markup=True, highlight=False)


def error(message: str):
    """红色错误提示"""
    err_console.print(f"{PREFIX} [error]ERROR[/error]: {escape(message)}", markup=True, highlight=False)


def heading(title: str):
    """标题输出"""
    console.print(f"\n[heading]{title}[/heading]\n")


def print_json(data: Any):
    """美化输出 JSON/字典数据"""
    console.print_json(data=data)


# --- 表格 ---

def print_table(rows: list, headers: list, title: Optional[str] = None):
    """打印简单表格"""
    from rich.table import Table

    table = Table(title=title, show_header=True, header_style="bold magenta")
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)

