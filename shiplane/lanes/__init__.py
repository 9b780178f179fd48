"""Lane orchestration: parameters, changelog handling and the stage runner."""
