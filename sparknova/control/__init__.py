from .window import Window, WindowController, calculate_window_size

__all__ = ["Window", "WindowController", "calculate_window_size"]
