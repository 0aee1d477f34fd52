# Configuration file for the Sphinx documentation builder.
#
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys

# --- Paths para encontrar el backend (paquete peskas) ---
ROOT_DIR = os.path.abspath(os.path.join(__file__, "..", "..", ".."))
BACKEND_SRC = os.path.join(ROOT_DIR, "backend", "src")
sys.path.insert(0, BACKEND_SRC)

project = "Peskas API"
author = "Peskas"
release = "0.3.0"
language = "es"

extensions = [
    "myst_parser",           # Markdown con MyST
    "sphinx.ext.autodoc",    # API Python
    "sphinx.ext.autosummary",
    "sphinx.ext.napoleon",   # docstrings estilo NumPy
    "sphinx.ext.viewcode",
]

autosummary_generate = True

myst_enable_extensions = [
    "deflist",
    "colon_fence",
]

html_theme = "sphinx_rtd_theme"

templates_path = ["_templates"]
exclude_patterns = []
