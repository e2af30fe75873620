from setuptools import setup


setup(
    name="late-adds",
    version="0.1.0",
    description="Find appointments added between two prints of a schedule report",
    packages=["late_adds"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
    },
    entry_points={
        "console_scripts": [
            "late-adds=late_adds.cli:main",
        ]
    },
)
