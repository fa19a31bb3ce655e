"""Allow running as: python -m requirements_editor [--reload]"""

from requirements_editor.main import serve
import sys

if __name__ == "__main__":
    serve(reload="--reload" in sys.argv)
