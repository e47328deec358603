# setup.py
from setuptools import setup, find_packages

setup(
    name="morphclaude",
    version="0.1.0",
    description="Claude Code edit interceptor that reconciles file edits through the Morph fast-apply merge service.",
    author="Mighty-Morphin-Claude contributors",
    # 单一顶级包；templates 作为包数据一起安装
    packages=find_packages(include=['morphclaude', 'morphclaude.*']),
    include_package_data=True,
    package_data={
        'morphclaude': ['templates/*.j2'],
    },
    install_requires=[
        "click>=8.0",
        "pyyaml",
        "jinja2",
        "rich",
        "httpx>=0.24",
        "keyring>=23.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "respx>=0.20",
        ],
    },
    entry_points={
        'console_scripts': [
            'morphclaude = morphclaude.cli:cli',
            'morph-hook = morphclaude.hook:main',
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Build Tools",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
