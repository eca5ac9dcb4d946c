from setuptools import setup, find_packages

setup(
    name="smartbills-notifications",
    version="0.1.0",
    packages=find_packages(include=["smartbills", "smartbills.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "alembic",
        "psycopg2-binary",
        "python-jose[cryptography]",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "celery",
        "prometheus-client",
        "prometheus-fastapi-instrumentator",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "smartbills-notifications=smartbills.main:run",
        ],
    },
)
