"""native-loader.

Locates the pre-built shared library matching the host platform inside
packaged resources, extracts it to a private directory and loads it.
"""

__all__: list[str] = ["NativeLoader", "__version__"]

__version__: str = "0.1.0"

from native_loader.core.services.native_loader import NativeLoader  # noqa: E402
