"""Library-owned schema of the built-in file attachment model."""

from crudforge.metadata.types import FieldAnnotations, ModelSource, RawField

# Fields referencing this model name get the file tree attached
FILE_MODEL_NAME = "StoredFile"


def _file_field(instance: str, display_name: str, description: str, **kwargs) -> RawField:
    required = kwargs.pop("required", False)
    return RawField(
        instance=instance,
        required=required,
        annotations=FieldAnnotations(
            display_name=display_name,
            description=description,
            **kwargs,
        ),
    )


def file_model_source(store_id: str = "") -> ModelSource:
    """Flattened paths of the file attachment model."""
    return ModelSource(
        store_id=store_id,
        model_name=FILE_MODEL_NAME,
        description="Uploaded file attachment",
        paths=[
            ("name", _file_field("String", "File name", "Name of the saved file", required=True)),
            ("path", _file_field("String", "File path", "Path of the saved file", required=True)),
            ("size", _file_field("Number", "File size", "Size of the saved file in bytes", required=True)),
            ("extension", _file_field("String", "File extension", "Extension of the saved file", required=True)),
            ("isImage", _file_field("Boolean", "Is image?", "Whether the saved file is an image", default=False)),
            ("thumbnailPath", _file_field("String", "Thumbnail path", "Path of the saved thumbnail")),
            ("_id", RawField(instance="ObjectId")),
            ("__v", RawField(instance="Number")),
        ],
    )
