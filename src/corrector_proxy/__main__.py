"""Allow ``python -m corrector_proxy``."""

from corrector_proxy.main import run

run()
