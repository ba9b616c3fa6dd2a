# gitbm/__main__.py
from gitbm.main import cli


cli()
