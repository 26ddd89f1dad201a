from setuptools import setup


setup(
    name="faq-splitter",
    version="0.1.0",
    description="Split a FAQ spreadsheet into keyword categories, one sheet and one report document per category",
    packages=["faq_splitter"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "streamlit",
        "requests",
    ],
    extras_require={
        "pdf": ["matplotlib"],
        "test": ["pytest"],
        "all": ["matplotlib"],
    },
    entry_points={
        "console_scripts": [
            "faq-splitter=faq_splitter.cli:main",
        ]
    },
)
