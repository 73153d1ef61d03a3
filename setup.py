from setuptools import setup


setup(
    name="tabular-terms",
    version="0.1.0",
    description="Uniform multilingual table access over Excel workbooks and directories of delimited files",
    packages=["tabular_terms"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "all": ["xlrd"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "tabular-terms=tabular_terms.cli:main",
        ]
    },
)
