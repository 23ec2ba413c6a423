import importlib.util
import sys
import os
from tempfile import TemporaryDirectory
import pytest
# Ensure the project root is on sys.path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

DEF_DIR = os.path.join(os.path.dirname(__file__), 'def')


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with TemporaryDirectory() as dir_path:
        yield dir_path


@pytest.fixture
def def_path():
    """Path of a sample schema under tests/def."""
    def make(name):
        return os.path.join(DEF_DIR, name)
    return make


@pytest.fixture
def load_module(temp_dir):
    """Write generated code to a module file and import it."""
    loaded = []

    def load(code, module_name):
        path = os.path.join(temp_dir, f"{module_name}.py")
        with open(path, 'w', encoding='utf-8') as f:
            f.write(code)
        spec = importlib.util.spec_from_file_location(module_name, path)
        module = importlib.util.module_from_spec(spec)
        # dataclasses resolves string annotations through sys.modules
        sys.modules[module_name] = module
        loaded.append(module_name)
        spec.loader.exec_module(module)
        return module

    yield load
    for module_name in loaded:
        sys.modules.pop(module_name, None)
