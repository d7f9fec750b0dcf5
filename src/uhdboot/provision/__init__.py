__all__ = ["apt", "cmake", "source", "verify"]

from uhdboot.provision import apt, cmake, source, verify
