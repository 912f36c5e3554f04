class DocChatError(Exception):
    """Base exception for the document chat core."""

    def __init__(self, message: str = "An internal error occurred."):
        self.message = message
        super().__init__(self.message)


class DocumentNotBoundError(DocChatError):
    """Generation was requested before a document was set."""

    def __init__(self, message: str = "Document not set. Please call set_document() first."):
        super().__init__(message)


class ModelNotReadyError(DocChatError):
    """The local model has not finished loading."""

    def __init__(self, message: str = "Model not loaded. Please call initialize() first."):
        super().__init__(message)


class GenerationError(DocChatError):
    """The model failed to produce a response."""

    def __init__(self, message: str = "Error generating response."):
        super().__init__(message)


class TransportError(GenerationError):
    """The remote API could not be reached or returned an unusable response."""

    def __init__(self, message: str = "Error communicating with the language model API."):
        super().__init__(message)


class StreamParseError(DocChatError):
    """A single streamed event line could not be decoded."""

    def __init__(self, message: str = "Malformed stream event."):
        super().__init__(message)


class GenerationInProgressError(DocChatError):
    """A second generation was started while one is still running."""

    def __init__(self, message: str = "A response is already being generated."):
        super().__init__(message)


class UnsupportedInputError(DocChatError):
    """The supplied file or URL cannot be turned into a document."""

    def __init__(self, message: str = "Unsupported input."):
        super().__init__(message)


class BackendNotFoundError(DocChatError):
    """Requested generation backend is not available."""

    def __init__(self, provider: str):
        super().__init__(f"Generation backend '{provider}' is not supported.")


class DocumentNotFoundError(DocChatError):
    """No stored document has the requested id."""

    def __init__(self, document_id: str):
        super().__init__(f"Document '{document_id}' was not found.")


class StorageError(DocChatError):
    """The document store failed."""

    def __init__(self, message: str = "Document store operation failed."):
        super().__init__(message)
