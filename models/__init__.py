from .user_model import UserModel
from .poll_model import Poll
from .poll_options_model import PollOption
from .vote_model import Vote
from .comment_model import Comment
from .comment_reaction_model import CommentReaction
from .comment_report_model import CommentReport
from .poll_share_model import PollShare

__all__ = [
    'UserModel', 'Poll', 'PollOption', 'Vote', 'Comment',
    'CommentReaction', 'CommentReport', 'PollShare',
]
