from setuptools import setup, find_packages

setup(
    name='timetok8s',
    version='0.1.0',
    license='Apache 2.0',
    description='Measures how long local Kubernetes clusters take to start.',
    python_requires='>=3.8',
    packages=find_packages(include=['timetok8s', 'timetok8s.*']),
    package_data={'timetok8s': ['data/*.j2', 'data/*.yaml']},
    entry_points={
        'console_scripts': ['time-to-k8s=timetok8s.time_to_k8s:main'],
    },
    install_requires=['absl-py',
                      'colorlog',
                      'jinja2>=2.7',
                      'psutil',
                      'PyYAML'],
    extras_require={
        'test': ['mock', 'pytest'],
    })
