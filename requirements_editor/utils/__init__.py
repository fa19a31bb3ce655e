from .logger import setup_logging
from .naming import branch_name, requirement_file_path

__all__ = ["setup_logging", "branch_name", "requirement_file_path"]
