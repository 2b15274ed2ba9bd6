from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

import config


TEMPLATE_DIR = Path(__file__).parent / 'templates'

# Set up Jinja2 environment
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    undefined=StrictUndefined,
    keep_trailing_newline=True
)


def render_buildspec(**overrides) -> str:
    """Render the CodeBuild buildspec that installs and runs Prowler."""
    values = {
        'prowler_version': config.prowler_version,
        'python_version': config.python_version
    }
    values.update(overrides)
    template = env.get_template('buildspec.yml.j2')
    return template.render(values)
