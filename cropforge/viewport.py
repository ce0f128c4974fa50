"""Viewport mapping — where the video lands inside a board of any shape."""

from cropforge.models import BoardExtent, ClipPos, MediaMetadata, ViewBox


def compute_clip_pos(board: BoardExtent, media: MediaMetadata | None) -> ClipPos | None:
    """Return the letterboxed rectangle the media occupies inside ``board``.

    Without media the whole board is used. All rounding floors, so the
    result never extends past the board.
    """
    if board.width == 0 or board.height == 0:
        return None
    if media is None:
        return ClipPos(left=0, top=0, width=board.width, height=board.height)

    # Compare board.w/board.h with media.w/media.h without floating point
    if board.width * media.height > media.width * board.height:
        # Board is wider: pillarbox
        width = max(media.width * board.height // media.height, 1)
        return ClipPos(
            left=(board.width - width) // 2,
            top=0,
            width=width,
            height=board.height,
        )

    # Board is taller or the same shape: letterbox
    height = max(media.height * board.width // media.width, 1)
    return ClipPos(
        left=0,
        top=(board.height - height) // 2,
        width=board.width,
        height=height,
    )


def compute_view_box(media: MediaMetadata | None) -> ViewBox | None:
    if media is None:
        return None
    return ViewBox(x=0, y=0, width=media.width, height=media.height)
