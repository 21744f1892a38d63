import os
from glob import glob

from setuptools import find_packages, setup

package_name = 'rendezvous_mission'
launch_files = glob('rendezvous_mission/launch/*.py')
param_files = glob('rendezvous_mission/param/*.yaml')

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(exclude=['test', 'test.*']),
    package_data={package_name: ['launch/*.py', 'param/*.yaml']},
    data_files=[
        ('share/ament_index/resource_index/packages', ['resource/' + package_name]),
        (os.path.join('share', package_name), ['package.xml']),
        (os.path.join('share', package_name, 'launch'), launch_files),
        (os.path.join('share', package_name, 'param'), param_files),
    ],
    install_requires=['setuptools', 'PyYAML'],
    extras_require={'test': ['pytest']},
    zip_safe=True,
    maintainer='Rendezvous Robotics',
    maintainer_email='support@rendezvous-robotics.dev',
    description='Explorer/follower ArUco rendezvous mission on top of Nav2 NavigateToPose.',
    license='Apache-2.0',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'mission_coordinator = rendezvous_mission.nodes.mission_node:main',
        ],
    },
)
