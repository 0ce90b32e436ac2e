from setuptools import setup, find_packages

setup(
    name="convox-installer",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"convox_installer": ["templates/*.tf.j2"]},
    install_requires=[
        "click>=8.0.0",
        "rich>=13.0.0",
        "jinja2>=3.0.0",
        "requests>=2.25.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "convox-installer=convox_installer.cli:main",
        ],
    },
    python_requires=">=3.9",
)
