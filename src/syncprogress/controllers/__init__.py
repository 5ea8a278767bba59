"""Controllers coordinate sync sources <-> progress state."""

from syncprogress.controllers.loading_controller import LoadingController

__all__ = ["LoadingController"]
