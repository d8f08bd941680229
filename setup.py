from setuptools import setup, find_packages

setup(
    name="mkdocs-clangxml",
    version="0.1.0",
    description="MkDocs plugin that extracts C/C++/Objective-C doc comments as JSON via libclang",
    keywords="mkdocs clang libclang c objc documentation json python",
    packages=find_packages(exclude=["tests"]),
    install_requires=[
        "mkdocs>=1.4",
        "libclang>=16.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers = [
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Documentation",
        "Topic :: Software Development :: Documentation",
        "Framework :: MkDocs",
    ],
    entry_points={
        "mkdocs.plugins": [
            "clangxml = mkdocs_clangxml.plugin:ClangXmlPlugin",
        ],
        "console_scripts": [
            "clangxml = mkdocs_clangxml.extract:main",
        ],
    },
)
