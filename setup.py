from setuptools import setup, find_packages

setup(
    name="shiptrack",
    version="0.1.0",
    description="Shipment tracking API with an admin dashboard and templated email notifications",
    author="",
    author_email="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"shiptrack": ["templates/email/*"]},
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "Flask>=2.2.0",
        "flask-cors>=4.0.0",
        "Flask-Limiter>=3.0.0",
        "PyJWT>=2.4.0",
        "google-auth>=2.0.0",
        "google-cloud-firestore>=2.11.0",
        "Jinja2>=3.0.0",
        "email-validator>=2.0.0",
        "sendgrid>=6.9.0",
        "python-dotenv>=0.19.0",
        "click>=8.0.0",
        "rich>=12.0.0",
        "tabulate>=0.9.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "requests>=2.28.0",
        "PyYAML>=5.4.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "shiptrack=shiptrack.cli:main",
        ],
    },
)
