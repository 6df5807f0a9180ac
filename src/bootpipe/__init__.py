"""bootpipe - build-lifecycle orchestration for PHP project skeletons."""

__version__ = "0.1.0"
