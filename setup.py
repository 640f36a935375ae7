from setuptools import setup, find_namespace_packages
import os

install_requires = ["lark", "pydantic>=2"]

# Define optional dependencies for development
extras_require = {"dev": ["pytest"]}

setup(
    name="dampen-markup",
    version="0.1.0",
    packages=find_namespace_packages(where=".", include=["dampen", "dampen.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.10",
    include_package_data=True,
    package_data={"dampen.expr": ["expression.lark"]},
    description="Markup lexer, binding-expression parser and evaluator for the Dampen UI description language.",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
)
