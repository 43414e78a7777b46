'''
**meteorhttp**
---------

A small fluent HTTP helper for talking to the Microsoft, Xbox Live and Mojang
authentication services:

    profile = meteorhttp.get('https://api.mojang.com/users/profiles/minecraft/jeb_').send_json(Profile)
'''
from meteorhttp.http import (
    ALLOWED_HOSTS,
    ClientConfig,
    FailureReason,
    Request,
    URLRejectedError,
    configure,
    get,
    post,
)

__all__ = [
    'ALLOWED_HOSTS',
    'ClientConfig',
    'FailureReason',
    'Request',
    'URLRejectedError',
    'configure',
    'get',
    'post',
]
