"""Install the maker identity gateway."""

from setuptools import setup, find_packages

setup(
    name='maker-auth',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    py_modules=['wsgi'],
    install_requires=[
        "flask",
        "werkzeug",
        "wtforms",
        "ldap3",
        "retry",
        "python-json-logger",
        "pytz",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
            "mimesis",
        ]
    },
    zip_safe=False
)
