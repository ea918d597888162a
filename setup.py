from setuptools import setup

setup(
    name="mfinstaller",
    version="1.0.0",
    description="Global project generator for MiniFramework PHP",
    packages=["mfinstaller", "mfinstaller.commands"],
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0.0",
        "rich>=13.0.0",
        "requests>=2.28.0",
        "jinja2>=3.0.0",
        "toml>=0.10.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pyfakefs>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "miniframework=mfinstaller.cli:main",
        ]
    },
  )
