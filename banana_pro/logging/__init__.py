from .tee import install_log_tee, log_jsonl, logs_dir

__all__ = ["install_log_tee", "log_jsonl", "logs_dir"]
