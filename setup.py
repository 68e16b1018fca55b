# setup.py
from setuptools import setup, find_packages

setup(
    name="site_prerender",
    version="0.1.0",
    description="Асинхронный пререндер динамических сайтов в статические файлы SitePrerender",
    packages=find_packages(exclude=["tests", "tests.*"]),  # автоматически найдёт папку site_prerender
    package_data={"site_prerender": ["templates/*.j2"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "multidict>=6.0",
        "beautifulsoup4>=4.12",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    python_requires=">=3.11",
)
