"""Model source generation, smart merge and file change planning.

Usage:
    from surql_sync.codegen import generate_code, merge_table_code, plan_file_changes
"""

from surql_sync.codegen.generator import generate_code, generate_table_code
from surql_sync.codegen.merge import MergeResult, merge_table_code
from surql_sync.codegen.planner import (
    FileChange,
    FileChangeType,
    format_file_changes,
    plan_file_changes,
    summarize_file_changes,
)

__all__ = [
    "generate_code",
    "generate_table_code",
    "MergeResult",
    "merge_table_code",
    "FileChange",
    "FileChangeType",
    "format_file_changes",
    "plan_file_changes",
    "summarize_file_changes",
]
