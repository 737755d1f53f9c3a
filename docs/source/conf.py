# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

# -- Project information -----------------------------------------------------

project = 'Bullet Cluster Modeling'

# -- General configuration ---------------------------------------------------

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.viewcode',
    'myst_parser',
]

templates_path = ['_templates']
exclude_patterns = []

# -- Autodoc configuration ---------------------------------------------------
autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'show-inheritance': True,
    'undoc-members': False,
    'imported-members': False,
}
autodoc_typehints = 'description'
autodoc_preserve_defaults = True

# psycopg2 is only needed against a live PostgreSQL server
autodoc_mock_imports = ['psycopg2']

# -- Options for HTML output -------------------------------------------------

html_theme = 'alabaster'
html_static_path = []
