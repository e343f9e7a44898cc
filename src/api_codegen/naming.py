"""Name casing helpers and path-parameter style transforms.

Path templates use OpenAPI-style parameters. Any of these match one token:

    {param}  {param*}  {.param}  {.param*}  {;param}  {;param*}  {?param}  {?param*}
"""

import re

PATH_PARAM_RE = re.compile(r"{[.;?]?([^{}*]+)\*?}")

CAMEL_SEPARATORS = "-#@!$&=.+:;_~ (){}[]/"


def to_camel_case(value: str, init_case: bool = False) -> str:
    """Camel-case a string, dropping separators and other punctuation.

    init_case=True upper-cases the first letter ("UserId"), otherwise the
    first letter is lowered ("userId").
    """
    result = []
    cap_next = init_case
    for i, ch in enumerate(value.strip(" ")):
        if ch.isupper() and i == 0 and not cap_next:
            result.append(ch.lower())
            continue
        if ch.isupper() or ch.isdigit():
            result.append(ch)
        elif ch.islower():
            result.append(ch.upper() if cap_next else ch)
        cap_next = ch in CAMEL_SEPARATORS
    return "".join(result)


def remove_whitespace_and_caps(value: str) -> str:
    """Remove whitespace, upper-casing the character after each gap."""
    result = []
    cap_next = False
    for ch in value:
        if ch.isspace():
            cap_next = True
        elif cap_next:
            cap_next = False
            result.append(ch.upper())
        else:
            result.append(ch)
    return "".join(result)


def uri_path_param_to_colon_param(uri: str) -> str:
    """/users/{userId} -> /users/:userId (Echo / Express style)."""
    return PATH_PARAM_RE.sub(r":\1", uri)


def uri_path_param_to_braces_param(uri: str) -> str:
    """/users/{.userId*} -> /users/{userId} (Chi style)."""
    return PATH_PARAM_RE.sub(r"{\1}", uri)


def uri_path_param_to_angle_brackets_param(uri: str) -> str:
    """/users/{user-id} -> /users/<user_id> (Flask style)."""
    return PATH_PARAM_RE.sub(lambda m: "<" + m.group(1).replace("-", "_") + ">", uri)


def uri_path_param_to_lower_camel_param(uri: str) -> str:
    """/users/{user-id}/house -> /users/:userId/house"""
    return PATH_PARAM_RE.sub(lambda m: ":" + to_camel_case(m.group(1), False), uri)
