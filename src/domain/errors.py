class ListingError(Exception):
    """
    Base class for every failure the listing core reports to its callers.

    `code` is a stable machine-readable category; `message` is safe to show
    to the end user. Internal causes are chained with `raise ... from` and
    logged, never copied into the message.
    """

    code: str = "listing_error"
    default_message: str = "Erro ao processar o produto"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(ListingError):
    """Missing or malformed draft input. User-correctable, never retried."""

    code = "validation_error"
    default_message = "Campos obrigatórios: titulo, descricao, preco, vendedor"


class NotFoundError(ListingError):
    code = "not_found"
    default_message = "Produto não encontrado"

    def __init__(self, listing_id: str) -> None:
        self.listing_id = listing_id
        super().__init__()


class StorageError(ListingError):
    """The durable commit (or read) failed; in-memory state was left untouched."""

    code = "storage_error"
    default_message = "Erro ao salvar produto"


class AttachmentError(ListingError):
    """An upload was rejected by the type/size/count policy before any mutation."""

    code = "attachment_rejected"
    default_message = "Apenas imagens são permitidas!"
