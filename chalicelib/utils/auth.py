import os
from typing import NamedTuple, Optional

import jwt
from chalice.app import Request

from chalicelib.constants.constants import JWT_ALGORITHM
from chalicelib.constants.enums import Role
from chalicelib.utils import exceptions as utils_exceptions
from chalicelib.utils.logger import log_request, logger, set_request_id


class Actor(NamedTuple):
    """ The authenticated identity performing an operation """
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def jwt_secret() -> str:
    secret = os.environ.get('JWT_SECRET')
    if not secret:
        logger.error('jwt_secret ::: JWT_SECRET is not configured')
        raise utils_exceptions.InternalError()
    return secret


def actor_from_token(token: Optional[str]) -> Actor:
    """
    Decodes a bearer token issued by the identity provider.
    Claims: sub - user id, role - one of Role values
    """
    if not token:
        raise utils_exceptions.NotAuthenticated()
    if token.lower().startswith('bearer '):
        token = token[len('bearer '):]
    try:
        claims = jwt.decode(token.strip(), jwt_secret(), algorithms=[JWT_ALGORITHM])
        return Actor(id=str(claims['sub']), role=Role(claims['role']))
    except (jwt.InvalidTokenError, KeyError, ValueError) as error:
        logger.warning(f'actor_from_token ::: token rejected, {error.__class__.__name__}')
        raise utils_exceptions.NotAuthenticated() from error


def get_actor(request: Request) -> Actor:
    set_request_id(request)
    log_request(request)
    headers = request.headers or {}
    actor = actor_from_token(headers.get('authorization'))
    logger.info(f'get_actor ::: SUCCESS, actor_id={actor.id}, role={actor.role.value}')
    return actor


def require_actor(actor: Optional[Actor]) -> Actor:
    if actor is None:
        raise utils_exceptions.NotAuthenticated()
    return actor
