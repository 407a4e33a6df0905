# ginkgo_vision/__init__.py
# Empty file to mark the directory as a Python package
