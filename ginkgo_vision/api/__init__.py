# ginkgo_vision/api/__init__.py
# Import the router
from ginkgo_vision.api.routes import router
