import requests

_image_not_found_explanation_fragments = frozenset(
    msg.lower() for msg in [
        'no such image',
        'not found: does not exist or no pull access',
        'repository does not exist',
        'was found but does not match the specified platform',
    ]
)


class DockerException(Exception):
    """
    A base class from which all other exceptions inherit.

    If you want to catch all errors that the Docker API client might raise,
    catch this base exception.
    """


def create_api_error_from_http_exception(e):
    """
    Create a suitable APIError from requests.exceptions.HTTPError.
    """
    response = e.response
    try:
        explanation = response.json()['message']
    except ValueError:
        explanation = (response.text or '').strip()
    except KeyError:
        explanation = None
    cls = APIError
    if response.status_code == 404:
        explanation_msg = (explanation or '').lower()
        if any(fragment in explanation_msg
               for fragment in _image_not_found_explanation_fragments):
            cls = ImageNotFound
        else:
            cls = NotFound
    raise cls(e, response=response, explanation=explanation) from e


class APIError(requests.exceptions.HTTPError, DockerException):
    """
    An HTTP error from the API.
    """
    def __init__(self, message, response=None, explanation=None):
        super().__init__(message)
        self.response = response
        self.explanation = explanation

    def __str__(self):
        message = super().__str__()

        if self.is_client_error():
            message = (
                f'{self.response.status_code} Client Error for '
                f'{self.response.url}: {self.response.reason}'
            )

        elif self.is_server_error():
            message = (
                f'{self.response.status_code} Server Error for '
                f'{self.response.url}: {self.response.reason}'
            )

        if self.explanation:
            message = f'{message} ("{self.explanation}")'

        return message

    @property
    def status_code(self):
        if self.response is not None:
            return self.response.status_code

    def is_error(self):
        return self.is_client_error() or self.is_server_error()

    def is_client_error(self):
        if self.status_code is None:
            return False
        return 400 <= self.status_code < 500

    def is_server_error(self):
        if self.status_code is None:
            return False
        return 500 <= self.status_code < 600


class NotFound(APIError):
    pass


class ImageNotFound(NotFound):
    pass


class InvalidVersion(DockerException):
    pass


class InvalidRepository(DockerException):
    pass


class InvalidConfigFile(DockerException):
    pass


class InvalidArgument(DockerException):
    pass


class TLSParameterError(DockerException):
    def __init__(self, msg):
        self.msg = msg

    def __str__(self):
        return self.msg + (". TLS configurations should map the Docker CLI "
                           "client configurations. See "
                           "https://docs.docker.com/engine/articles/https/ "
                           "for API details.")


class NullResource(DockerException, ValueError):
    pass


class BuildError(DockerException):
    def __init__(self, reason, build_log):
        super().__init__(reason)
        self.msg = reason
        self.build_log = build_log


class StreamDecodeError(DockerException):
    """
    Raised when a streamed response body cannot be decoded. Once a decoder
    has raised one of these, it produces no further values.
    """


class TruncatedFrame(StreamDecodeError):
    """The stream ended in the middle of a frame header or payload."""


class UnknownStreamTag(StreamDecodeError):
    def __init__(self, tag):
        super().__init__(f'Unknown stream tag in frame header: {tag}')
        self.tag = tag


class UnexpectedStdinFrame(StreamDecodeError):
    """A stdin frame showed up in a response stream."""


class MalformedJson(StreamDecodeError):
    pass


class TruncatedJson(StreamDecodeError):
    """The stream ended in the middle of a JSON value."""
