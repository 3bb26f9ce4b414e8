from setuptools import setup
import os

REQUIREMENTS_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'requirements.txt')


def read_requirements(path=REQUIREMENTS_FILE):
    """Returns the requirement specifiers in path, without blank lines or comments."""
    requirements = []
    with open(path, 'r', encoding='utf-8') as f:
        for raw in f:
            requirement = raw.split('#', 1)[0].strip()
            if requirement:
                requirements.append(requirement)
    return requirements

# Package metadata lives in pyproject.toml; dependencies are declared dynamic
# there and come from requirements.txt.
setup(
    install_requires=read_requirements(),
)
