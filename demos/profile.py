import logging
import sys
import dataclasses as dc

import meteorhttp

PROFILE_URL = 'https://api.mojang.com/users/profiles/minecraft/{name}'


@dc.dataclass(slots=True)
class Profile:
    id: str
    name: str
    legacy: bool = False
    demo: bool = False


def profile_str(profile: Profile) -> str:
    sep = '-------------------------'
    result = f'\n{sep}\n'
    for field in dc.fields(profile):
        result += f'{field.name}: {getattr(profile, field.name)}\n'
    return result + sep


def main() -> int:
    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    if len(sys.argv) < 2:
        name = input('Enter a Minecraft username to look up: ').strip()
    else:
        name = sys.argv[1].strip()

    request = meteorhttp.get(PROFILE_URL.format(name=name))
    profile = request.send_json(Profile)

    if profile is None:
        print(f'No profile found for {name!r} ({request.failure})')
        return 1

    print(profile_str(profile))
    return 0


if __name__ == '__main__':
    sys.exit(main())
